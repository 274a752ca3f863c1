"""
Repository Fetcher — Thin wrapper over the `git` executable.

Every call blocks until git exits; there is no timeout or retry. A non-zero
exit (or a missing git binary) raises GitOperationError.
"""

import subprocess
from pathlib import Path

import structlog

from ..errors import GitOperationError

logger = structlog.get_logger()

__all__ = [
    "clone_repo",
    "head_revision",
    "remote_revision",
]


def _run_git(args: list[str], action: str) -> subprocess.CompletedProcess[str]:
    try:
        proc = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise GitOperationError(f"{action} failed: {e}") from e

    if proc.returncode != 0:
        logger.debug(
            "git.failed",
            action=action,
            returncode=proc.returncode,
            stderr=proc.stderr[:200],
        )
        detail = proc.stderr.strip().splitlines()[-1] if proc.stderr.strip() else ""
        message = f"{action} failed"
        raise GitOperationError(f"{message}: {detail}" if detail else message)
    return proc


def clone_repo(url: str, dest: Path, branch: str | None = None) -> None:
    """Clone `url` into `dest` (which must not exist or be empty).

    Args:
        url: Clone URL.
        dest: Destination directory.
        branch: Branch to check out; the remote HEAD when None.
    """
    args = ["clone", "--depth", "1"]
    if branch:
        args += ["--branch", branch]
    args += [url, str(dest)]

    logger.info("git.clone", url=url, branch=branch)
    _run_git(args, f"git clone {url}")


def head_revision(repo_path: Path) -> str:
    """Return the commit id HEAD points to in a local clone."""
    proc = _run_git(["-C", str(repo_path), "rev-parse", "HEAD"], "git rev-parse HEAD")
    revision = proc.stdout.strip()
    if not revision:
        raise GitOperationError("Could not resolve HEAD revision")
    return revision


def remote_revision(url: str, branch: str | None = None) -> str:
    """Return the latest commit for `branch` (or HEAD) on the remote.

    Equivalent to the first token of `git ls-remote <url> <branch|HEAD>`.

    Raises:
        GitOperationError: ls-remote failed or printed nothing.
    """
    target = branch or "HEAD"
    proc = _run_git(["ls-remote", url, target], "git ls-remote")
    tokens = proc.stdout.split()
    if not tokens:
        raise GitOperationError("Could not resolve remote revision")
    return tokens[0]

