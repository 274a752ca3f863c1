"""
Sources — Source string resolution, git fetching and remote tree hashes.
"""

from .git import clone_repo, head_revision, remote_revision
from .resolver import (
    GitSource,
    HostedGitUrl,
    LocalSource,
    Source,
    SourceInfo,
    clone_url_for,
    parse_hosted_git_url,
    parse_source,
    source_info,
    source_string_for,
)
from .tree_hash import fetch_skill_folder_hash

__all__ = [
    "GitSource",
    "HostedGitUrl",
    "LocalSource",
    "Source",
    "SourceInfo",
    "clone_repo",
    "clone_url_for",
    "fetch_skill_folder_hash",
    "head_revision",
    "parse_hosted_git_url",
    "parse_source",
    "remote_revision",
    "source_info",
    "source_string_for",
]
