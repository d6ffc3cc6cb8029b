"""Command execution seam shared by every component that shells out."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from .errors import ProcessError

CommandRunner = Callable[..., str]
"""Signature: ``runner(args, *, cwd=None, env=None, capture_output=False) -> str``.

``env`` holds overrides applied on top of the current process environment; a
``None`` value removes the variable for the child process.
"""


def merge_env(overrides: Mapping[str, Optional[str]] | None) -> dict[str, str] | None:
    """Return the child environment for ``overrides`` or ``None`` to inherit."""
    if not overrides:
        return None
    env = os.environ.copy()
    for key, value in overrides.items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = value
    return env


def run_command(
    args: Iterable[str],
    *,
    cwd: Path | str | None = None,
    env: Mapping[str, Optional[str]] | None = None,
    capture_output: bool = False,
) -> str:
    """Run ``args`` and return its stdout when ``capture_output`` is set.

    Output streams straight to the console otherwise.
    """
    command = [str(arg) for arg in args]
    try:
        completed = subprocess.run(
            command,
            cwd=str(cwd) if cwd is not None else None,
            env=merge_env(env),
            check=False,
            text=True,
            capture_output=capture_output,
        )
    except FileNotFoundError as exc:
        raise ProcessError(command, 127, "", f"executable not found: {command[0]}") from exc
    if completed.returncode != 0:
        raise ProcessError(
            command,
            completed.returncode,
            completed.stdout or "",
            completed.stderr or "",
        )
    if capture_output:
        return completed.stdout
    return ""


__all__ = ["CommandRunner", "merge_env", "run_command"]
