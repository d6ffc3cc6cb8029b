"""Operations on the source checkout the manual is built from."""

from __future__ import annotations

from pathlib import Path

from ..logging import get_logger
from ..process import CommandRunner, run_command
from ..versions import EligibilityPolicy, VersionCatalog


class SourceCheckout:
    """A clone of the project repository, switched between tags and commits."""

    def __init__(
        self,
        path: Path,
        *,
        remote: str = "origin",
        runner: CommandRunner | None = None,
    ) -> None:
        self.path = Path(path)
        self.remote = remote
        self._runner = runner or run_command
        self.logger = get_logger("git.source")

    def collect_versions(self, policy: EligibilityPolicy | None = None) -> VersionCatalog:
        """Return the eligible versions among the remote's tags."""
        return VersionCatalog.collect(
            self.path, remote=self.remote, policy=policy, runner=self._runner
        )

    def checkout(self, ref: str) -> None:
        """Switch to ``ref`` and remove every untracked or ignored file."""
        self.logger.info("Checking out %s in %s", ref, self.path)
        self._runner(["git", "-C", str(self.path), "checkout", ref], cwd=self.path)
        self._runner(["git", "-C", str(self.path), "clean", "-fdx"], cwd=self.path)


__all__ = ["SourceCheckout"]
