"""Release tag parsing and the eligibility policy for PDF builds."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import ProcessError, RemoteListError
from .logging import get_logger
from .process import CommandRunner, run_command

logger = get_logger("versions")

# Only "pure" releases and rc/beta prereleases are built; build metadata and
# other prerelease kinds are rejected outright.
TAG_PATTERN = re.compile(r"^v(\d+)\.(\d+)\.(\d+)(?:-(rc|beta)(\d+))?$")
_BOUND_PATTERN = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)(?:-((?:rc|beta)\d+)?)?$")
_PRERELEASE_PATTERN = re.compile(r"^(rc|beta)(\d+)$")


@total_ordering
@dataclass(frozen=True)
class VersionIdentifier:
    """A ``major.minor.patch`` version with an optional ``rcN``/``betaN`` tag.

    ``prerelease`` is ``None`` for a release. The empty string is reserved for
    policy bounds such as ``1.8.0-``: it sorts below every real prerelease of
    the same triple and never comes out of :func:`parse_tag`.
    """

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "VersionIdentifier":
        """Parse a version or policy bound (``1.2.3``, ``v1.2.3-rc1``, ``1.8.0-``)."""
        match = _BOUND_PATTERN.match(text.strip())
        if not match:
            raise ValueError(f"Invalid version: {text!r}")
        major, minor, patch, pre = match.groups()
        if pre is None and text.strip().endswith("-"):
            pre = ""
        return cls(int(major), int(minor), int(patch), pre)

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    @property
    def series(self) -> str:
        """``major.minor``, the folder key used by the binary download hosts."""
        return f"{self.major}.{self.minor}"

    @property
    def tag(self) -> str:
        return f"v{self}"

    def _key(self) -> Tuple[int, int, int, int, str, int]:
        if self.prerelease is None:
            return (self.major, self.minor, self.patch, 1, "", 0)
        match = _PRERELEASE_PATTERN.match(self.prerelease)
        if match:
            return (self.major, self.minor, self.patch, 0, match.group(1), int(match.group(2)))
        return (self.major, self.minor, self.patch, 0, self.prerelease, -1)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionIdentifier):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease is None:
            return base
        return f"{base}-{self.prerelease}"


def parse_tag(tag: str) -> Optional[VersionIdentifier]:
    """Return the version for a strictly formatted tag, or ``None``."""
    match = TAG_PATTERN.match(tag)
    if not match:
        return None
    major, minor, patch, kind, number = match.groups()
    prerelease = f"{kind}{number}" if kind else None
    return VersionIdentifier(int(major), int(minor), int(patch), prerelease)


def parse_ls_remote(output: str) -> List[VersionIdentifier]:
    """Extract versions from ``git ls-remote --tags`` output in listing order.

    Lines look like ``<sha>\\trefs/tags/<tag>``. Unrelated tags are dropped and
    malformed lines are skipped; only output with no well-formed line at all is
    treated as unparseable.
    """
    versions: List[VersionIdentifier] = []
    seen = set()
    well_formed = 0
    lines = [line for line in output.splitlines() if line.strip()]
    for line in lines:
        sha, sep, ref = line.partition("\t")
        if not sep or not sha.strip() or not ref.startswith("refs/"):
            logger.debug("Skipping malformed ls-remote line: %r", line)
            continue
        well_formed += 1
        ref = ref.strip()
        if not ref.startswith("refs/tags/"):
            continue
        version = parse_tag(ref[len("refs/tags/"):])
        if version is None or version in seen:
            continue
        seen.add(version)
        versions.append(version)
    if lines and not well_formed:
        raise RemoteListError("Unable to parse remote tag listing")
    return versions


# ----------------------------------------------------------------------
# Eligibility rules


@dataclass(frozen=True)
class MinimumVersion:
    """Builds need toolchain support that only exists from ``floor`` onward."""

    floor: VersionIdentifier

    def excludes(self, version: VersionIdentifier) -> bool:
        return version < self.floor

    def describe(self) -> str:
        return f"below minimum {self.floor}"


@dataclass(frozen=True)
class PrereleaseCutoff:
    """Prereleases are only built from ``cutoff`` onward."""

    cutoff: VersionIdentifier

    def excludes(self, version: VersionIdentifier) -> bool:
        return version.is_prerelease and version < self.cutoff

    def describe(self) -> str:
        return f"prerelease below {self.cutoff}"


@dataclass(frozen=True)
class ExcludedRange:
    """Half-open range ``[lower, upper)`` of versions with known-broken builds."""

    lower: VersionIdentifier
    upper: VersionIdentifier

    def excludes(self, version: VersionIdentifier) -> bool:
        return self.lower <= version < self.upper

    def describe(self) -> str:
        return f"in excluded range [{self.lower}, {self.upper})"


@dataclass(frozen=True)
class ExcludedVersion:
    """A single version that cannot be built."""

    version: VersionIdentifier

    def excludes(self, version: VersionIdentifier) -> bool:
        return version == self.version

    def describe(self) -> str:
        return f"excluded version {self.version}"


EligibilityRule = MinimumVersion | PrereleaseCutoff | ExcludedRange | ExcludedVersion


@dataclass(frozen=True)
class EligibilityPolicy:
    """Ordered table of rules; a version is eligible when no rule excludes it."""

    rules: Tuple[EligibilityRule, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        floor: str | None = None,
        prerelease_cutoff: str | None = None,
        excluded_ranges: Sequence[Tuple[str, str]] = (),
        excluded_versions: Sequence[str] = (),
    ) -> "EligibilityPolicy":
        rules: List[EligibilityRule] = []
        if floor:
            rules.append(MinimumVersion(VersionIdentifier.parse(floor)))
        if prerelease_cutoff:
            rules.append(PrereleaseCutoff(VersionIdentifier.parse(prerelease_cutoff)))
        for lower, upper in excluded_ranges:
            rules.append(
                ExcludedRange(VersionIdentifier.parse(lower), VersionIdentifier.parse(upper))
            )
        for version in excluded_versions:
            rules.append(ExcludedVersion(VersionIdentifier.parse(version)))
        return cls(tuple(rules))

    @classmethod
    def default(cls) -> "EligibilityPolicy":
        return cls.build(
            floor=DEFAULT_FLOOR,
            prerelease_cutoff=DEFAULT_PRERELEASE_CUTOFF,
            excluded_ranges=DEFAULT_EXCLUDED_RANGES,
            excluded_versions=DEFAULT_EXCLUDED_VERSIONS,
        )

    def exclusion(self, version: VersionIdentifier) -> Optional[EligibilityRule]:
        """Return the first rule that excludes ``version``, if any."""
        for rule in self.rules:
            if rule.excludes(version):
                return rule
        return None

    def is_eligible(self, version: VersionIdentifier) -> bool:
        return self.exclusion(version) is None


# PDF builds of the manual became possible with 1.1.0.
DEFAULT_FLOOR = "1.1.0"
DEFAULT_PRERELEASE_CUTOFF = "1.7.0-"
# 1.8.0 prereleases fail to build their docs.
DEFAULT_EXCLUDED_RANGES: Tuple[Tuple[str, str], ...] = (("1.8.0-", "1.8.0"),)
# No checksum file was uploaded for 1.9.0-beta1.
DEFAULT_EXCLUDED_VERSIONS: Tuple[str, ...] = ("1.9.0-beta1",)


@dataclass(frozen=True)
class VersionCatalog:
    """Versions eligible for a PDF build, in tag-listing order."""

    versions: Tuple[VersionIdentifier, ...] = field(default_factory=tuple)

    @classmethod
    def from_versions(
        cls,
        versions: Iterable[VersionIdentifier],
        policy: EligibilityPolicy | None = None,
    ) -> "VersionCatalog":
        policy = policy or EligibilityPolicy.default()
        eligible: List[VersionIdentifier] = []
        for version in versions:
            rule = policy.exclusion(version)
            if rule is not None:
                logger.debug("Excluding %s: %s", version.tag, rule.describe())
                continue
            if version not in eligible:
                eligible.append(version)
        return cls(tuple(eligible))

    @classmethod
    def from_tags(
        cls,
        tags: Iterable[str],
        policy: EligibilityPolicy | None = None,
    ) -> "VersionCatalog":
        parsed = (parse_tag(tag) for tag in tags)
        return cls.from_versions((v for v in parsed if v is not None), policy)

    @classmethod
    def collect(
        cls,
        source: Path,
        *,
        remote: str = "origin",
        policy: EligibilityPolicy | None = None,
        runner: CommandRunner | None = None,
    ) -> "VersionCatalog":
        """List the remote tags of ``source`` and keep the eligible versions."""
        runner = runner or run_command
        try:
            output = runner(
                ["git", "-C", str(source), "ls-remote", "--tags", remote],
                cwd=source,
                capture_output=True,
            )
        except ProcessError as exc:
            raise RemoteListError(f"Listing tags of {remote} failed: {exc}") from exc
        catalog = cls.from_versions(parse_ls_remote(output), policy)
        logger.info("Found %d eligible versions", len(catalog))
        return catalog

    @property
    def tags(self) -> List[str]:
        return [version.tag for version in self.versions]

    def __iter__(self) -> Iterator[VersionIdentifier]:
        return iter(self.versions)

    def __len__(self) -> int:
        return len(self.versions)

    def __contains__(self, version: object) -> bool:
        return version in self.versions


def collect_versions(
    source: Path,
    *,
    remote: str = "origin",
    policy: EligibilityPolicy | None = None,
    runner: CommandRunner | None = None,
) -> VersionCatalog:
    """Module-level shortcut for :meth:`VersionCatalog.collect`."""
    return VersionCatalog.collect(source, remote=remote, policy=policy, runner=runner)


__all__ = [
    "EligibilityPolicy",
    "EligibilityRule",
    "ExcludedRange",
    "ExcludedVersion",
    "MinimumVersion",
    "PrereleaseCutoff",
    "TAG_PATTERN",
    "VersionCatalog",
    "VersionIdentifier",
    "collect_versions",
    "parse_ls_remote",
    "parse_tag",
]
