"""Tests for pdfdocs.orchestrator."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import List, Sequence, Tuple

import pytest

from pdfdocs.config import BuildConfig
from pdfdocs.errors import IntegrityError
from pdfdocs.orchestrator import Orchestrator
from pdfdocs.store import PublishStore
from pdfdocs.versions import EligibilityPolicy, VersionCatalog, VersionIdentifier
from tests._fixtures.fakes import RecordingRunner


class RecordingSource:
    """Source checkout double with a fixed tag listing."""

    def __init__(self, tags: Sequence[str], events: List[str]) -> None:
        self.tags = list(tags)
        self.events = events

    def collect_versions(self, policy: EligibilityPolicy | None = None) -> VersionCatalog:
        return VersionCatalog.from_tags(self.tags, policy)

    def checkout(self, ref: str) -> None:
        self.events.append(f"checkout {ref}")


class RecordingFetcher:
    """Fetcher double that hands out fake executables."""

    def __init__(
        self,
        events: List[str],
        *,
        fail_on: str | None = None,
        nightly: Tuple[str, str] = ("abc123", "1.12.0-DEV"),
    ) -> None:
        self.events = events
        self.fail_on = fail_on
        self.nightly = nightly

    def fetch_release(self, version: VersionIdentifier) -> Path:
        self.events.append(f"fetch {version}")
        if self.fail_on == str(version):
            raise IntegrityError(f"checksum mismatch for {version}")
        return Path(f"/opt/julia-{version}/bin/julia")

    def fetch_nightly(self) -> Tuple[Path, str]:
        self.events.append("fetch nightly")
        return Path("/opt/julia-nightly/bin/julia"), self.nightly[0]

    def resolve_version(self, executable: Path) -> str:
        return self.nightly[1]


class RecordingBuilder:
    """Builder double that writes a PDF naming the executable it was given."""

    def __init__(self, workdir: Path, events: List[str]) -> None:
        self.workdir = workdir
        self.events = events
        self._last = ""

    def build(self, source: Path, executable: Path) -> None:
        self.events.append(f"build {executable}")
        self._last = str(executable)

    def collect_output(self, source: Path) -> Path:
        output = self.workdir / "TheJuliaLanguage.pdf"
        output.write_text(f"%PDF {self._last}", encoding="utf-8")
        return output


def _orchestrator(
    config: BuildConfig,
    tmp_path: Path,
    *,
    tags: Sequence[str] = (),
    fetcher: RecordingFetcher | None = None,
    events: List[str] | None = None,
) -> Orchestrator:
    events = events if events is not None else []
    return Orchestrator(
        config,
        source=RecordingSource(tags, events),  # type: ignore[arg-type]
        fetcher=fetcher or RecordingFetcher(events),  # type: ignore[arg-type]
        builder=RecordingBuilder(tmp_path, events),  # type: ignore[arg-type]
    )


def test_run_releases_builds_missing_versions_in_listing_order(
    tmp_path: Path, config: BuildConfig
) -> None:
    events: List[str] = []
    (config.publish_dir / "julia-1.2.0.pdf").write_bytes(b"%PDF")
    orchestrator = _orchestrator(
        config, tmp_path, tags=["v1.3.0", "v1.0.0", "v1.2.0", "v1.1.0"], events=events
    )

    built = orchestrator.run_releases()

    assert [path.name for path in built] == ["julia-1.3.0.pdf", "julia-1.1.0.pdf"]
    assert events == [
        "fetch 1.3.0",
        "checkout v1.3.0",
        "build /opt/julia-1.3.0/bin/julia",
        "fetch 1.1.0",
        "checkout v1.1.0",
        "build /opt/julia-1.1.0/bin/julia",
    ]
    assert (config.staging_dir / "julia-1.3.0.pdf").read_text(encoding="utf-8") == (
        "%PDF /opt/julia-1.3.0/bin/julia"
    )


def test_run_releases_is_idempotent(tmp_path: Path, config: BuildConfig) -> None:
    events: List[str] = []
    orchestrator = _orchestrator(config, tmp_path, tags=["v1.9.0", "v1.9.1"], events=events)

    orchestrator.run_releases()
    events.clear()
    second = orchestrator.run_releases()

    assert second == []
    assert events == []


def test_run_releases_aborts_batch_on_first_failure(tmp_path: Path, config: BuildConfig) -> None:
    events: List[str] = []
    fetcher = RecordingFetcher(events, fail_on="1.9.1")
    orchestrator = _orchestrator(
        config, tmp_path, tags=["v1.9.0", "v1.9.1", "v1.9.2"], fetcher=fetcher, events=events
    )

    with pytest.raises(IntegrityError):
        orchestrator.run_releases()

    assert "fetch 1.9.2" not in events
    assert (config.staging_dir / "julia-1.9.0.pdf").exists()
    assert not (config.staging_dir / "julia-1.9.1.pdf").exists()


def test_build_release_pdf_short_circuits_when_published(
    tmp_path: Path, config: BuildConfig
) -> None:
    events: List[str] = []
    (config.publish_dir / "julia-1.9.0.pdf").write_bytes(b"%PDF")
    orchestrator = _orchestrator(config, tmp_path, events=events)

    assert orchestrator.build_release_pdf(VersionIdentifier.parse("1.9.0")) is None
    assert events == []


def test_run_nightly_checks_out_resolved_commit_before_building(
    tmp_path: Path, config: BuildConfig
) -> None:
    events: List[str] = []
    orchestrator = _orchestrator(config, tmp_path, events=events)

    outcome = orchestrator.run_nightly()

    assert events == [
        "fetch nightly",
        "checkout abc123",
        "build /opt/julia-nightly/bin/julia",
    ]
    assert outcome.commit == "abc123"
    assert outcome.version == "1.12.0-DEV"
    assert outcome.path == config.staging_dir / "julia-1.12.0-DEV.pdf"


def test_nightly_names_follow_resolved_dev_version(tmp_path: Path, config: BuildConfig) -> None:
    def run(commit: str, version: str) -> Path:
        events: List[str] = []
        fetcher = RecordingFetcher(events, nightly=(commit, version))
        return _orchestrator(config, tmp_path, fetcher=fetcher, events=events).run_nightly().path

    first = run("aaa", "1.12.0-DEV")
    second = run("bbb", "1.13.0-DEV")
    third = run("ccc", "1.13.0-DEV")

    assert first != second
    assert second == third
    assert sorted(p.name for p in config.staging_dir.iterdir()) == [
        "julia-1.12.0-DEV.pdf",
        "julia-1.13.0-DEV.pdf",
    ]


def test_run_commit_respects_pull_request_guard(tmp_path: Path, config: BuildConfig) -> None:
    runner = RecordingRunner()
    pr_config = replace(config, pull_request=True)
    orchestrator = Orchestrator(pr_config, runner=runner)
    PublishStore(pr_config).stage(
        RecordingBuilder(tmp_path, []).collect_output(tmp_path), "julia-1.9.0.pdf"
    )

    assert orchestrator.run_commit() is False
    assert runner.calls == []


def test_run_commit_publishes_staged_files(tmp_path: Path, config: BuildConfig) -> None:
    runner = RecordingRunner()
    orchestrator = Orchestrator(config, runner=runner)
    orchestrator.store.stage(
        RecordingBuilder(tmp_path, []).collect_output(tmp_path), "julia-1.9.0.pdf"
    )

    assert orchestrator.run_commit() is True
    assert runner.commands[-1] == ["git", "push", "-f", "origin", "assets"]
    assert (config.publish_dir / "julia-1.9.0.pdf").exists()


def test_collect_versions_applies_configured_policy(tmp_path: Path, config: BuildConfig) -> None:
    policy = EligibilityPolicy.build(floor="1.1.0", prerelease_cutoff="1.7.0")
    orchestrator = _orchestrator(
        replace(config, policy=policy),
        tmp_path,
        tags=["v1.0.0", "v1.1.0", "v1.6.0-rc1", "v1.9.0-beta1", "v1.9.0"],
    )

    assert orchestrator.collect_versions().tags == ["v1.1.0", "v1.9.0-beta1", "v1.9.0"]
