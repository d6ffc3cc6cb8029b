"""Publish directory bookkeeping: skip checks, staging and deployment."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import List

from .config import BuildConfig
from .errors import ProcessError, PublishError
from .git.publisher import Publisher
from .logging import get_logger
from .versions import VersionIdentifier


class PublishStore:
    """Tracks which PDFs exist and moves newly built ones onto the branch.

    ``publish_dir`` is a checkout of the deployment branch; ``staging_dir``
    collects PDFs built during this run until :meth:`publish` merges them.
    """

    def __init__(self, config: BuildConfig, *, publisher: Publisher | None = None) -> None:
        self.config = config
        self.publish_dir = config.publish_dir
        self.staging_dir = config.staging_dir
        self.publisher = publisher or Publisher(config.publish)
        self.logger = get_logger("store")

    def artifact_name(self, version: VersionIdentifier | str) -> str:
        return self.config.publish.artifact_name.format(version=version)

    def is_published(self, name: str) -> bool:
        return (self.publish_dir / name).is_file() or (self.staging_dir / name).is_file()

    def skip_if_published(self, version: VersionIdentifier) -> bool:
        """Return True when the PDF for ``version`` already exists."""
        name = self.artifact_name(version)
        if self.is_published(name):
            self.logger.info("PDF for %s already exists, skipping.", version.tag)
            return True
        return False

    def stage(self, file: Path, target_name: str) -> Path:
        """Copy a freshly built PDF into the staging area under ``target_name``."""
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        destination = self.staging_dir / target_name
        shutil.copyfile(file, destination)
        self.logger.info("Finished, output file copied to %s.", destination)
        return destination

    def staged_files(self) -> List[Path]:
        if not self.staging_dir.is_dir():
            return []
        return sorted(path for path in self.staging_dir.glob("*.pdf") if path.is_file())

    def publish(self) -> bool:
        """Merge staged PDFs into the branch's single commit and force-push it.

        Returns False without touching anything for pull-request runs or when
        nothing was staged.
        """
        if self.config.pull_request:
            self.logger.info("Skipping commit from pull requests.")
            return False
        if not self.staging_dir.is_dir():
            self.logger.info("Nothing staged in %s, skipping commit.", self.staging_dir)
            return False
        staged = self.staged_files()
        if not staged:
            self.logger.info("No PDFs staged in %s, skipping commit.", self.staging_dir)
            return False

        self.logger.info("Committing %d built PDF files.", len(staged))
        repo = self.publish_dir
        try:
            self.publisher.sync(repo)
            for path in staged:
                shutil.copyfile(path, repo / path.name)
                self.logger.debug("Copied %s into %s", path.name, repo)
            self.publisher.amend(repo)
            self.publisher.push(repo, deploy_key=self.config.deploy_key, token=self.config.token)
        except (ProcessError, OSError) as exc:
            raise PublishError(f"Publishing to {self.config.publish.branch} failed: {exc}") from exc
        self.logger.info("Deployed %s", ", ".join(path.name for path in staged))
        return True


__all__ = ["PublishStore"]
