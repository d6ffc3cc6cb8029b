"""Error hierarchy for pdfdocs workflows."""

from __future__ import annotations

from typing import Sequence


class PdfDocsError(RuntimeError):
    """Base class for every failure a pdfdocs run reports to the operator."""


class ConfigError(PdfDocsError):
    """Raised when the configuration file cannot be parsed."""


class ProcessError(PdfDocsError):
    """Raised when an external command exits with a non-zero status code."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"Command {' '.join(self.command)} failed with exit code {returncode}"
        detail = (stderr or "").strip()
        if detail:
            message += f": {detail}"
        super().__init__(message)


class RemoteListError(PdfDocsError):
    """Raised when the remote tag listing fails or cannot be parsed."""


class FetchError(PdfDocsError):
    """Raised when a binary distribution cannot be downloaded or unpacked."""


class IntegrityError(PdfDocsError):
    """Raised when a downloaded tarball does not match its published checksum."""

    def __init__(self, message: str, *, checksums: str = "") -> None:
        self.checksums = checksums
        super().__init__(message)


class BuildError(PdfDocsError):
    """Raised when the external documentation build fails."""


class PublishError(PdfDocsError):
    """Raised when committing or pushing the PDF branch fails."""


__all__ = [
    "BuildError",
    "ConfigError",
    "FetchError",
    "IntegrityError",
    "PdfDocsError",
    "ProcessError",
    "PublishError",
    "RemoteListError",
]
