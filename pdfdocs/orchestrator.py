"""Workflow orchestration for the releases, nightly and commit modes."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .builder import DocBuilder
from .config import BuildConfig
from .fetch import ArtifactFetcher
from .git.publisher import Publisher
from .git.source import SourceCheckout
from .logging import get_logger
from .process import CommandRunner
from .store import PublishStore
from .versions import VersionCatalog, VersionIdentifier


@dataclass
class NightlyOutcome:
    """Result of a nightly build."""

    path: Path
    commit: str
    version: str


class Orchestrator:
    """Composes fetching, building and publishing into the three workflows."""

    def __init__(
        self,
        config: BuildConfig,
        *,
        runner: CommandRunner | None = None,
        source: SourceCheckout | None = None,
        fetcher: ArtifactFetcher | None = None,
        builder: DocBuilder | None = None,
        store: PublishStore | None = None,
    ) -> None:
        self.config = config
        self.source = source or SourceCheckout(config.source_dir, runner=runner)
        self.fetcher = fetcher or ArtifactFetcher(config, runner=runner)
        self.builder = builder or DocBuilder(config.build, runner=runner)
        self.store = store or PublishStore(
            config, publisher=Publisher(config.publish, runner=runner)
        )
        self.logger = get_logger("orchestrator")

    def collect_versions(self) -> VersionCatalog:
        return self.source.collect_versions(self.config.policy)

    def run_releases(self) -> List[Path]:
        """Build every eligible release that has no PDF yet, one at a time.

        A failure aborts the remaining versions.
        """
        self.logger.info("Building PDFs for all applicable releases.")
        built: List[Path] = []
        for version in self.collect_versions():
            path = self.build_release_pdf(version)
            if path is not None:
                built.append(path)
        self.logger.info("Built %d new PDFs.", len(built))
        return built

    def build_release_pdf(self, version: VersionIdentifier) -> Optional[Path]:
        """Fetch, build and stage the PDF for ``version`` unless it exists."""
        self.logger.info("Building PDF for %s.", version.tag)
        if self.store.skip_if_published(version):
            return None

        executable = self.fetcher.fetch_release(version)
        self.source.checkout(version.tag)
        self.builder.build(self.config.source_dir, executable)
        output = self.builder.collect_output(self.config.source_dir)
        return self.store.stage(output, self.store.artifact_name(version))

    def run_nightly(self) -> NightlyOutcome:
        """Build the PDF for the latest nightly, named after its dev version."""
        self.logger.info("Building PDF for nightly.")
        executable, commit = self.fetcher.fetch_nightly()
        version = self.fetcher.resolve_version(executable)
        self.logger.info("Commit determined to %s and version determined to %s.", commit, version)

        self.source.checkout(commit)
        self.builder.build(self.config.source_dir, executable)
        output = self.builder.collect_output(self.config.source_dir)
        path = self.store.stage(output, self.store.artifact_name(version))
        return NightlyOutcome(path=path, commit=commit, version=version)

    def run_commit(self) -> bool:
        """Deploy staged PDFs to the documentation repository."""
        publish = self.config.publish
        self.logger.info("Deploying to %s (%s).", publish.https_url, publish.branch)
        return self.store.publish()


__all__ = ["NightlyOutcome", "Orchestrator"]
