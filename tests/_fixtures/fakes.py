"""Test doubles for the command runner and downloader seams."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pdfdocs.errors import ProcessError


@dataclass
class Call:
    args: List[str]
    cwd: Optional[Path]
    env: Optional[Dict[str, Optional[str]]]
    capture_output: bool


class RecordingRunner:
    """Records commands and replays scripted output keyed by command prefix."""

    def __init__(
        self,
        outputs: Mapping[Tuple[str, ...], str] | None = None,
        *,
        fail_on: Sequence[str] | None = None,
        on_call: Callable[[List[str]], None] | None = None,
    ) -> None:
        self.outputs = dict(outputs or {})
        self.fail_on = list(fail_on) if fail_on else None
        self.on_call = on_call
        self.calls: List[Call] = []

    def __call__(self, args, cwd=None, env=None, capture_output=False):  # type: ignore[no-untyped-def]
        command = [str(arg) for arg in args]
        self.calls.append(
            Call(command, Path(cwd) if cwd is not None else None, env, capture_output)
        )
        if self.on_call is not None:
            self.on_call(command)
        if self.fail_on is not None and command[: len(self.fail_on)] == self.fail_on:
            raise ProcessError(command, 1, "", "boom")
        for prefix, output in self.outputs.items():
            if tuple(command[: len(prefix)]) == prefix:
                return output
        return ""

    @property
    def commands(self) -> List[List[str]]:
        return [call.args for call in self.calls]


class FakeDownloader:
    """Serves downloads from local files keyed by URL."""

    def __init__(self, files: Mapping[str, Path]) -> None:
        self.files = dict(files)
        self.urls: List[str] = []

    def __call__(self, url: str, destination: Path) -> None:
        self.urls.append(url)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.files[url], destination)


__all__ = ["Call", "FakeDownloader", "RecordingRunner"]
