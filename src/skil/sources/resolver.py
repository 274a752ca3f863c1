"""
Source Resolver — Turns a user-supplied source string into a Source.

Accepted forms:
- local paths: ./dir, ../dir, ., .., /abs/dir, C:/dir, or any existing path
- hosted git URLs (GitHub, GitLab, Codeberg), including "browse" URLs that
  carry a branch and a subpath, and git@host:owner/repo.git SSH shorthands
- any other URL (contains :// or starts with git@) as a generic git source
- owner/repo[/sub/path] shorthand for GitHub

Hosted providers are data (HOSTED_PROVIDERS): one parser walks the table,
so adding a host means adding a row.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple

import structlog

from ..errors import FilesystemError, InvalidSourceError, SourceNotFoundError

logger = structlog.get_logger()

__all__ = [
    "GitSource",
    "HOSTED_PROVIDERS",
    "HostedGitUrl",
    "HostedProvider",
    "LocalSource",
    "Source",
    "SourceInfo",
    "clone_url_for",
    "parse_hosted_git_url",
    "parse_source",
    "source_info",
    "source_string_for",
]

SOURCE_TYPE_LOCAL = "local"
SOURCE_TYPE_GIT = "git"

_DRIVE_LETTER = re.compile(r"^[A-Za-z]:[/\\]")


@dataclass(frozen=True)
class SourceInfo:
    """Provenance metadata recorded in config and lock files.

    source_id is the config key: owner/repo when known, else the raw URL
    (or the canonical path for local sources).
    """

    source_id: str
    source_type: str
    source_url: str
    github_owner_repo: str | None = None
    github_branch: str | None = None


@dataclass(frozen=True)
class LocalSource:
    """A directory on disk. `path` is resolved and exists."""

    path: Path


@dataclass(frozen=True)
class GitSource:
    """A git repository reachable at a clone URL."""

    url: str
    subpath: str | None
    info: SourceInfo


Source = LocalSource | GitSource


@dataclass(frozen=True)
class HostedProvider:
    """A git host recognized by literal URL prefix.

    markers are the path segments that introduce "<branch>/<path...>" in the
    host's browse URLs; browse_marker is the one used to build such URLs.
    """

    source_type: str
    host: str
    markers: tuple[tuple[str, ...], ...]
    browse_marker: str

    def clone_url(self, owner_repo: str) -> str:
        return f"https://{self.host}/{owner_repo}.git"

    def browse_url(self, owner_repo: str, branch: str, subpath: str | None = None) -> str:
        url = f"https://{self.host}/{owner_repo}/{self.browse_marker}/{branch}"
        return f"{url}/{subpath}" if subpath else url


HOSTED_PROVIDERS: tuple[HostedProvider, ...] = (
    HostedProvider("github", "github.com", (("tree",), ("blob",)), "tree"),
    HostedProvider("gitlab", "gitlab.com", (("-", "tree"),), "-/tree"),
    HostedProvider("codeberg", "codeberg.org", (("src", "branch"),), "src/branch"),
)

_PROVIDERS_BY_TYPE = {p.source_type: p for p in HOSTED_PROVIDERS}


class HostedGitUrl(NamedTuple):
    """Result of parsing a hosted git URL."""

    url: str
    subpath: str | None
    owner_repo: str
    branch: str | None
    source_type: str


def parse_source(source: str) -> Source:
    """Parse a user-provided source string.

    Args:
        source: Local path, URL or owner/repo shorthand.

    Returns:
        LocalSource or GitSource.

    Raises:
        SourceNotFoundError: An explicit local path does not exist.
        InvalidSourceError: The shorthand has fewer than two segments.
    """
    if _is_local_path(source):
        path = Path(source)
        if not path.exists():
            raise SourceNotFoundError(f"Local path does not exist: {source}")
        return LocalSource(path=_canonicalize(path))

    path = Path(source)
    if path.exists():
        return LocalSource(path=_canonicalize(path))

    if _looks_like_url(source):
        return _parse_git_url(source)

    return _parse_owner_repo(source)


def source_info(source: Source) -> SourceInfo:
    """Provenance for any source; local sources are keyed by their path."""
    if isinstance(source, GitSource):
        return source.info
    return SourceInfo(
        source_id=str(source.path),
        source_type=SOURCE_TYPE_LOCAL,
        source_url=str(source.path),
    )


def parse_hosted_git_url(source: str) -> HostedGitUrl | None:
    """Parse a GitHub, GitLab or Codeberg URL.

    Returns:
        HostedGitUrl, or None when the host is not a known provider.
    """
    source = source.rstrip("/")
    for provider in HOSTED_PROVIDERS:
        parsed = _parse_with_provider(provider, source)
        if parsed:
            return parsed
    return None


def source_string_for(
    source_key: str,
    source_type: str,
    branch: str | None = None,
    subpath: str | None = None,
) -> str:
    """Rebuild a parseable source string from a config entry.

    Used by `update` to re-run the add pipeline for a recorded source.
    """
    provider = _PROVIDERS_BY_TYPE.get(source_type)
    if provider is None:
        return source_key
    if branch:
        return provider.browse_url(source_key, branch, subpath)
    if subpath and provider.source_type == "github":
        return f"{source_key}/{subpath}"
    return f"https://{provider.host}/{source_key}"


def clone_url_for(source_key: str, source_type: str) -> str | None:
    """Clone URL for a config entry, or None for local sources."""
    if source_type == SOURCE_TYPE_LOCAL:
        return None
    provider = _PROVIDERS_BY_TYPE.get(source_type)
    if provider is None:
        return source_key
    return provider.clone_url(source_key)


# ── Internals ────────────────────────────────────────────────────────────


def _looks_like_url(source: str) -> bool:
    return "://" in source or source.startswith("git@")


def _is_local_path(source: str) -> bool:
    return (
        source.startswith("./")
        or source.startswith("../")
        or source in (".", "..")
        or Path(source).is_absolute()
        or bool(_DRIVE_LETTER.match(source))
    )


def _canonicalize(path: Path) -> Path:
    try:
        return path.resolve(strict=True)
    except OSError as e:
        raise FilesystemError(f"Cannot resolve {path}: {e}") from e


def _strip_git_suffix(value: str) -> str:
    while value.endswith(".git"):
        value = value[: -len(".git")]
    return value


def _parse_with_provider(provider: HostedProvider, source: str) -> HostedGitUrl | None:
    rest = None
    for scheme in ("https://", "http://"):
        prefix = f"{scheme}{provider.host}/"
        if source.startswith(prefix):
            rest = source[len(prefix):]
            break

    if rest is not None:
        parts = rest.split("/")
        if len(parts) >= 2:
            owner = parts[0]
            repo = _strip_git_suffix(parts[1])
            owner_repo = f"{owner}/{repo}"
            clone_url = provider.clone_url(owner_repo)

            for marker in provider.markers:
                n = len(marker)
                if len(parts) >= 3 + n and tuple(parts[2:2 + n]) == marker:
                    branch = parts[2 + n]
                    subpath = "/".join(parts[3 + n:]) or None
                    return HostedGitUrl(clone_url, subpath, owner_repo, branch, provider.source_type)

            return HostedGitUrl(clone_url, None, owner_repo, None, provider.source_type)

    ssh_prefix = f"git@{provider.host}:"
    if source.startswith(ssh_prefix):
        parts = _strip_git_suffix(source[len(ssh_prefix):]).split("/")
        if len(parts) >= 2:
            owner_repo = f"{parts[0]}/{parts[1]}"
            return HostedGitUrl(source, None, owner_repo, None, provider.source_type)

    return None


def _parse_git_url(source: str) -> GitSource:
    hosted = parse_hosted_git_url(source)
    if hosted:
        logger.debug(
            "source.hosted",
            host=hosted.source_type,
            owner_repo=hosted.owner_repo,
            branch=hosted.branch,
            subpath=hosted.subpath,
        )
        return GitSource(
            url=hosted.url,
            subpath=hosted.subpath,
            info=SourceInfo(
                source_id=hosted.owner_repo,
                source_type=hosted.source_type,
                source_url=hosted.url,
                github_owner_repo=hosted.owner_repo,
                github_branch=hosted.branch,
            ),
        )

    return GitSource(
        url=source,
        subpath=None,
        info=SourceInfo(
            source_id=source,
            source_type=SOURCE_TYPE_GIT,
            source_url=source,
        ),
    )


def _parse_owner_repo(source: str) -> GitSource:
    parts = [p for p in source.split("/") if p]
    if len(parts) < 2:
        raise InvalidSourceError("Invalid source: expected owner/repo or URL")

    owner, repo = parts[0], parts[1]
    subpath = "/".join(parts[2:]) or None
    owner_repo = f"{owner}/{repo}"
    url = _PROVIDERS_BY_TYPE["github"].clone_url(owner_repo)

    return GitSource(
        url=url,
        subpath=subpath,
        info=SourceInfo(
            source_id=owner_repo,
            source_type="github",
            source_url=url,
            github_owner_repo=owner_repo,
            github_branch=None,
        ),
    )
