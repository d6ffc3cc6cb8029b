"""Download, verify and unpack binary distributions used to build the manual."""

from __future__ import annotations

import hashlib
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .config import BuildConfig
from .errors import FetchError, IntegrityError, ProcessError
from .logging import get_logger
from .process import CommandRunner, run_command
from .versions import VersionIdentifier

logger = get_logger("fetch")

Downloader = Callable[[str, Path], None]

_CHUNK_SIZE = 1 << 16


def http_download(url: str, destination: Path, *, timeout: float = 300.0) -> None:
    """Stream ``url`` into ``destination``, following redirects."""
    request = Request(url, headers={"User-Agent": "pdfdocs"})
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        with urlopen(request, timeout=timeout) as response, destination.open("wb") as handle:  # type: ignore[arg-type]
            shutil.copyfileobj(response, handle, _CHUNK_SIZE)
    except HTTPError as exc:
        destination.unlink(missing_ok=True)
        raise FetchError(f"GET {url} failed with status {exc.code}") from exc
    except URLError as exc:
        destination.unlink(missing_ok=True)
        raise FetchError(f"GET {url} failed: {exc.reason}") from exc
    except OSError as exc:
        destination.unlink(missing_ok=True)
        raise FetchError(f"GET {url} failed: {exc}") from exc


def sha256_file(path: Path) -> str:
    """Compute the SHA256 hash of the provided file."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def expected_digest(checksums: str, filename: str) -> Optional[str]:
    """Return the digest listed for ``filename`` in ``sha256sum``-style text."""
    for line in checksums.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[-1].lstrip("*") == filename:
            return parts[0].lower()
    return None


def verify_checksum(tarball: Path, checksum_file: Path) -> None:
    """Check ``tarball`` against its line in ``checksum_file``.

    The checksum file is dumped to the error log on failure.
    """
    checksums = checksum_file.read_text(encoding="utf-8", errors="replace")
    expected = expected_digest(checksums, tarball.name)
    if expected is None:
        problem = f"No checksum listed for {tarball.name} in {checksum_file.name}"
    else:
        actual = sha256_file(tarball)
        if actual == expected:
            logger.debug("Checksum verified for %s", tarball.name)
            return
        problem = f"Checksum mismatch for {tarball.name}: expected {expected}, got {actual}"
    logger.error("---- SHA256 ----\n%s\n---- SHA256 ----", checksums.rstrip())
    raise IntegrityError(problem, checksums=checksums)


def extract_tarball(tarball: Path, destination: Path) -> str:
    """Unpack ``tarball`` into ``destination`` without its top-level folder.

    Returns the name of that top-level folder.
    """
    try:
        with tarfile.open(tarball, "r:*") as archive:
            members = archive.getmembers()
            if not members:
                raise FetchError(f"{tarball.name} is empty")
            root = PurePosixPath(members[0].name).parts[0]
            stripped: List[tarfile.TarInfo] = []
            for member in members:
                parts = PurePosixPath(member.name).parts
                if len(parts) <= 1:
                    continue
                member.name = str(PurePosixPath(*parts[1:]))
                if member.islnk():
                    link_parts = PurePosixPath(member.linkname).parts
                    if len(link_parts) > 1:
                        member.linkname = str(PurePosixPath(*link_parts[1:]))
                stripped.append(member)
            if destination.exists():
                shutil.rmtree(destination)
            destination.mkdir(parents=True)
            archive.extractall(destination, members=stripped, filter="data")
    except (tarfile.TarError, OSError) as exc:
        raise FetchError(f"Unable to extract {tarball.name}: {exc}") from exc
    return root


def commit_from_folder(folder: str) -> str:
    """Return ``<commit>`` from a nightly folder named ``<prefix>-<commit>``."""
    _, sep, commit = folder.rstrip("/").rpartition("-")
    if not sep or not commit:
        raise FetchError(f"Cannot determine commit from archive folder {folder!r}")
    return commit


class ArtifactFetcher:
    """Fetches release and nightly binaries into the build root."""

    def __init__(
        self,
        config: BuildConfig,
        *,
        downloader: Downloader | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.config = config
        self.distribution = config.distribution
        self._download = downloader or http_download
        self._runner = runner or run_command

    def fetch_release(self, version: VersionIdentifier) -> Path:
        """Download, verify and extract ``version``; return its executable."""
        dist = self.distribution
        tarball_name = dist.release_tarball.format(version=version)
        checksum_name = dist.checksum_file.format(version=version)
        root = self.config.build_root
        tarball = root / tarball_name
        checksum = root / checksum_name

        logger.info("Downloading %s", tarball_name)
        self._download(
            dist.release_url.format(series=version.series, version=version, tarball=tarball_name),
            tarball,
        )
        self._download(
            dist.checksum_url.format(version=version, checksum=checksum_name),
            checksum,
        )
        verify_checksum(tarball, checksum)

        target = root / _strip_archive_suffix(tarball_name)
        extract_tarball(tarball, target)
        return (target / dist.executable).resolve()

    def fetch_nightly(self) -> Tuple[Path, str]:
        """Download the rolling nightly; return its executable and source commit."""
        dist = self.distribution
        tarball = self.config.build_root / dist.nightly_tarball
        logger.info("Downloading %s", dist.nightly_tarball)
        self._download(dist.nightly_url.format(tarball=dist.nightly_tarball), tarball)

        target = self.config.build_root / dist.nightly_folder
        folder = extract_tarball(tarball, target)
        commit = commit_from_folder(folder)
        return (target / dist.executable).resolve(), commit

    def resolve_version(self, executable: Path) -> str:
        """Ask ``executable`` for its version (``julia version 1.12.0-DEV``)."""
        try:
            output = self._runner([str(executable), "--version"], capture_output=True)
        except ProcessError as exc:
            raise FetchError(f"Unable to query version of {executable}: {exc}") from exc
        parts = output.split()
        if len(parts) < 3:
            raise FetchError(f"Unexpected version output: {output.strip()!r}")
        return parts[2]


def _strip_archive_suffix(name: str) -> str:
    for suffix in (".tar.gz", ".tgz", ".tar"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


__all__ = [
    "ArtifactFetcher",
    "Downloader",
    "commit_from_folder",
    "expected_digest",
    "extract_tarball",
    "http_download",
    "sha256_file",
    "verify_checksum",
]
