"""Drive the external documentation toolchain that renders the PDF manual."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Optional

from .config import BuildSettings
from .errors import BuildError, ProcessError
from .logging import get_logger
from .process import CommandRunner, run_command


class DocBuilder:
    """Runs the PDF build for a source checkout against a given executable."""

    def __init__(
        self,
        settings: BuildSettings | None = None,
        *,
        runner: CommandRunner | None = None,
    ) -> None:
        self.settings = settings or BuildSettings()
        self._runner = runner or run_command
        self.logger = get_logger("builder")

    def command(self, source: Path, executable: Path) -> List[str]:
        return [
            part.format(source=source, executable=executable)
            for part in self.settings.command
        ]

    def build(self, source: Path, executable: Path) -> None:
        """Build the PDF, logging a heartbeat until the build finishes.

        The build runs on a worker thread; the heartbeat stops as soon as the
        build completes.
        """
        args = self.command(source, executable)
        env: Dict[str, Optional[str]] = {key: None for key in self.settings.unset_env}
        interval = self.settings.heartbeat_interval
        self.logger.info("Running %s", " ".join(args))

        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdfdocs-build") as executor:
            future = executor.submit(self._runner, args, cwd=source, env=env)
            while True:
                done, _ = wait([future], timeout=interval)
                if done:
                    break
                self.logger.info("building pdf ...")

        try:
            future.result()
        except ProcessError as exc:
            raise BuildError(f"PDF build failed: {exc}") from exc

    def collect_output(self, source: Path) -> Path:
        """Return the PDF the toolchain wrote under ``source``."""
        output = Path(source) / self.settings.output_dir
        prefix = self.settings.output_prefix
        if output.is_dir():
            for candidate in sorted(output.iterdir()):
                if candidate.name.startswith(prefix) and candidate.name.endswith(".pdf"):
                    return candidate
        raise BuildError(f"No {prefix}*.pdf found in {output}")


__all__ = ["DocBuilder"]
