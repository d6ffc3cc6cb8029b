"""Git publishing utilities for the single-commit PDF branch."""

from __future__ import annotations

import base64
import binascii
import contextlib
import os
import shlex
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional
from urllib.parse import urlsplit

from ..config import PublishConfig
from ..errors import PublishError
from ..logging import get_logger
from ..process import CommandRunner, run_command

KEY_FILENAME = ".documenter"


class Publisher:
    """Rewrites the tip commit of the deployment branch and force-pushes it.

    The branch always holds exactly one commit: every publish amends it in
    place so history depth never grows.
    """

    def __init__(
        self,
        settings: PublishConfig | None = None,
        *,
        runner: CommandRunner | None = None,
    ) -> None:
        self.settings = settings or PublishConfig()
        self._runner = runner or run_command
        self.logger = get_logger("git.publisher")

    @property
    def remote_ref(self) -> str:
        return f"{self.settings.remote}/{self.settings.branch}"

    def sync(self, repo: Path) -> None:
        """Fetch the branch and hard-reset the working copy onto it."""
        branch = self.settings.branch
        remote = self.settings.remote
        self._run(
            ["git", "fetch", remote, f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}"],
            cwd=repo,
        )
        self._run(["git", "reset", "--hard", self.remote_ref], cwd=repo)

    def amend(self, repo: Path) -> None:
        """Stage every PDF and replace the branch's commit with a fresh one."""
        env = self._identity_env()
        self._run(["git", "add", "--", "*.pdf"], cwd=repo)
        self._run(
            ["git", "commit", "--amend", "--date=now", "-m", self.settings.message],
            cwd=repo,
            env=env,
        )

    def push(
        self,
        repo: Path,
        *,
        deploy_key: str | None = None,
        token: str | None = None,
    ) -> None:
        """Force-push the branch, authenticating with a deploy key or token."""
        branch = self.settings.branch
        if deploy_key:
            with deploy_key_file(deploy_key, repo / KEY_FILENAME) as keyfile:
                env = {"GIT_SSH_COMMAND": ssh_command(keyfile)}
                self._run(
                    ["git", "remote", "set-url", self.settings.remote, self.settings.ssh_url],
                    cwd=repo,
                )
                self._run(["git", "push", "-f", self.settings.remote, branch], cwd=repo, env=env)
            return
        if token:
            env = token_env(self.settings.https_url, token)
            self._run(
                ["git", "push", "-f", self.settings.https_url, branch], cwd=repo, env=env
            )
            return
        self.logger.warning("No deploy key or token configured; pushing with ambient credentials")
        self._run(["git", "push", "-f", self.settings.remote, branch], cwd=repo)

    # ------------------------------------------------------------------
    # Helpers

    def _identity_env(self) -> Dict[str, str]:
        env: Dict[str, str] = {}
        name = os.environ.get("GIT_AUTHOR_NAME") or self.settings.author_name
        email = os.environ.get("GIT_AUTHOR_EMAIL") or self.settings.author_email
        env["GIT_AUTHOR_NAME"] = name
        env["GIT_AUTHOR_EMAIL"] = email
        env["GIT_COMMITTER_NAME"] = os.environ.get("GIT_COMMITTER_NAME") or name
        env["GIT_COMMITTER_EMAIL"] = os.environ.get("GIT_COMMITTER_EMAIL") or email
        return env

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: Optional[Dict[str, str]] = None,
    ) -> str:
        return self._runner(list(args), cwd=cwd, env=env)


@contextlib.contextmanager
def deploy_key_file(encoded: str, path: Path) -> Iterator[Path]:
    """Write the base64 ``encoded`` private key to ``path`` for the block's duration."""
    try:
        key = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise PublishError("Deploy key is not valid base64") from exc
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(key)
        path.chmod(0o600)
        yield path.resolve()
    finally:
        path.unlink(missing_ok=True)


def ssh_command(keyfile: Path) -> str:
    return " ".join(
        [
            "ssh",
            "-i",
            shlex.quote(str(keyfile)),
            "-o",
            "IdentitiesOnly=yes",
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "BatchMode=yes",
        ]
    )


def token_env(https_url: str, token: str) -> Dict[str, str]:
    """Return git config overrides sending ``token`` as basic auth for ``https_url``.

    The header travels through ``GIT_CONFIG_*`` variables and never appears in
    the command line.
    """
    parts = urlsplit(https_url)
    credentials = base64.b64encode(f"x-access-token:{token}".encode()).decode("ascii")
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": f"http.{parts.scheme}://{parts.netloc}/.extraheader",
        "GIT_CONFIG_VALUE_0": f"AUTHORIZATION: basic {credentials}",
    }


__all__ = ["KEY_FILENAME", "Publisher", "deploy_key_file", "ssh_command", "token_env"]
