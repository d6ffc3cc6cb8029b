"""Configuration loading for pdfdocs (environment plus optional .pdfdocs.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .errors import ConfigError
from .versions import (
    DEFAULT_EXCLUDED_RANGES,
    DEFAULT_EXCLUDED_VERSIONS,
    DEFAULT_FLOOR,
    DEFAULT_PRERELEASE_CUTOFF,
    EligibilityPolicy,
)

CONFIG_FILENAME = ".pdfdocs.yml"
_SECTIONS = ("policy", "distribution", "build", "publish")
_POLICY_KEYS = ("floor", "prerelease_cutoff", "excluded_ranges", "excluded_versions")


@dataclass
class DistributionConfig:
    """URL and file name templates for the binary download hosts."""

    release_url: str = "https://julialang-s3.julialang.org/bin/linux/x64/{series}/{tarball}"
    checksum_url: str = "https://julialang-s3.julialang.org/bin/checksums/{checksum}"
    nightly_url: str = "https://julialangnightlies-s3.julialang.org/bin/linux/x64/{tarball}"
    release_tarball: str = "julia-{version}-linux-x86_64.tar.gz"
    checksum_file: str = "julia-{version}.sha256"
    nightly_tarball: str = "julia-latest-linux64.tar.gz"
    nightly_folder: str = "julia-latest-linux64"
    executable: str = "bin/julia"


@dataclass
class BuildSettings:
    """How the external documentation toolchain is driven."""

    command: List[str] = field(
        default_factory=lambda: [
            "make",
            "-C",
            "{source}/doc",
            "pdf",
            "texplatform=docker",
            "JULIA_EXECUTABLE={executable}",
        ]
    )
    unset_env: List[str] = field(default_factory=lambda: ["TRAVIS_REPO_SLUG", "BUILDROOT"])
    heartbeat_interval: float = 60.0
    output_dir: str = "doc/_build/pdf/en"
    output_prefix: str = "TheJuliaLanguage"


@dataclass
class PublishConfig:
    """Target branch and identity used when deploying PDFs."""

    branch: str = "assets"
    remote: str = "origin"
    ssh_url: str = "git@github.com:JuliaLang/docs.julialang.org.git"
    https_url: str = "https://github.com/JuliaLang/docs.julialang.org.git"
    message: str = "PDF versions of Julia's manual."
    author_name: str = "zeptodoctor"
    author_email: str = "44736852+zeptodoctor@users.noreply.github.com"
    artifact_name: str = "julia-{version}.pdf"


@dataclass
class BuildConfig:
    """Everything a run needs, resolved once and passed to each component."""

    build_root: Path
    source_dir: Path
    publish_dir: Path
    staging_dir: Path
    deploy_key: Optional[str] = None
    token: Optional[str] = None
    pull_request: bool = False
    policy: EligibilityPolicy = field(default_factory=EligibilityPolicy.default)
    distribution: DistributionConfig = field(default_factory=DistributionConfig)
    build: BuildSettings = field(default_factory=BuildSettings)
    publish: PublishConfig = field(default_factory=PublishConfig)
    config_file: Optional[Path] = None


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BuildConfig:
    """Resolve paths and secrets from ``environ`` and merge the YAML file, if any."""
    env = os.environ if environ is None else environ

    build_root = Path(env.get("BUILDROOT") or os.getcwd()).expanduser()
    source_dir = Path(env.get("JULIA_SOURCE") or build_root / "julia").expanduser()
    publish_dir = Path(env.get("JULIA_DOCS") or build_root / "docs.julialang.org").expanduser()
    staging_dir = Path(env.get("JULIA_DOCS_STAGING") or build_root / "staging").expanduser()

    config = BuildConfig(
        build_root=build_root,
        source_dir=source_dir,
        publish_dir=publish_dir,
        staging_dir=staging_dir,
        deploy_key=env.get("DOCUMENTER_KEY_PDF") or None,
        token=env.get("GITHUB_TOKEN") or None,
        pull_request=is_pull_request(env),
    )

    if config_path is None:
        config_path = Path(env.get("PDFDOCS_CONFIG") or CONFIG_FILENAME)
    config_file = _resolve_config_path(config_path)
    if not config_file.exists():
        return config

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")
    unknown = sorted(str(key) for key in data if key not in _SECTIONS)
    if unknown:
        raise ConfigError(f"Unknown section(s) in {config_file.name}: {', '.join(unknown)}")

    config.config_file = config_file
    config.policy = _load_policy(_as_dict(data.get("policy")))
    _apply(config.distribution, _as_dict(data.get("distribution")))
    _apply(config.build, _as_dict(data.get("build")))
    _apply(config.publish, _as_dict(data.get("publish")))
    return config


def is_pull_request(env: Mapping[str, str]) -> bool:
    """Return whether the run was triggered by a pull request.

    Travis reports the PR number (or ``false``) in ``TRAVIS_PULL_REQUEST``;
    GitHub Actions names the triggering event in ``GITHUB_EVENT_NAME``. With
    neither marker the run is treated as a pull request and nothing is pushed.
    """
    travis = env.get("TRAVIS_PULL_REQUEST")
    if travis is not None:
        return travis.strip().lower() != "false"
    event = env.get("GITHUB_EVENT_NAME")
    if not event:
        return True
    return event.startswith("pull_request")


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _load_policy(data: Dict[str, Any]) -> EligibilityPolicy:
    for key in data:
        if key not in _POLICY_KEYS:
            raise ConfigError(f"Unknown policy setting '{key}'")
    floor = _as_str(data["floor"]) if "floor" in data else DEFAULT_FLOOR
    cutoff = (
        _as_str(data["prerelease_cutoff"])
        if "prerelease_cutoff" in data
        else DEFAULT_PRERELEASE_CUTOFF
    )
    ranges = (
        _as_ranges(data["excluded_ranges"])
        if "excluded_ranges" in data
        else list(DEFAULT_EXCLUDED_RANGES)
    )
    versions = (
        _as_str_list(data["excluded_versions"])
        if "excluded_versions" in data
        else list(DEFAULT_EXCLUDED_VERSIONS)
    )
    try:
        return EligibilityPolicy.build(
            floor=floor,
            prerelease_cutoff=cutoff,
            excluded_ranges=ranges,
            excluded_versions=versions,
        )
    except ValueError as exc:
        raise ConfigError(f"Invalid policy: {exc}") from exc


def _apply(target: object, data: Dict[str, Any]) -> None:
    for key, value in data.items():
        if not hasattr(target, key):
            raise ConfigError(f"Unknown setting '{key}' for {type(target).__name__}")
        current = getattr(target, key)
        if isinstance(current, list):
            setattr(target, key, _as_str_list(value))
        elif isinstance(current, float):
            number = _as_float(value)
            if number is None:
                raise ConfigError(f"Setting '{key}' must be a number")
            setattr(target, key, number)
        else:
            text = _as_str(value)
            if text is None:
                raise ConfigError(f"Setting '{key}' must be a string")
            setattr(target, key, text)


def _as_ranges(value: Any) -> List[Tuple[str, str]]:
    ranges: List[Tuple[str, str]] = []
    if value is None:
        return ranges
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise ConfigError("excluded_ranges must be a list")
    for item in value:
        if isinstance(item, dict):
            lower, upper = _as_str(item.get("from")), _as_str(item.get("until"))
        elif isinstance(item, Sequence) and not isinstance(item, str) and len(item) == 2:
            lower, upper = _as_str(item[0]), _as_str(item[1])
        else:
            lower = upper = None
        if not lower or not upper:
            raise ConfigError(f"Invalid excluded range: {item!r}")
        ranges.append((lower, upper))
    return ranges


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "BuildConfig",
    "BuildSettings",
    "CONFIG_FILENAME",
    "ConfigError",
    "DistributionConfig",
    "PublishConfig",
    "is_pull_request",
    "load_config",
]
