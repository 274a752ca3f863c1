"""
Remote tree hash — Looks up the git tree SHA of a skill folder on GitHub.

The SHA is recorded in the lock file as provenance. It is optional: any
network, HTTP or parse failure yields None instead of an error.
"""

import httpx
import structlog

logger = structlog.get_logger()

GITHUB_API_BASE = "https://api.github.com"
_DEFAULT_BRANCHES = ("main", "master")
_HEADERS = {
    "Accept": "application/vnd.github.v3+json",
    "User-Agent": "skil-cli",
}


def folder_path_for(skill_path: str) -> str:
    """Turn a lock-file skill path (".../SKILL.md") into the folder path."""
    folder = skill_path.replace("\\", "/")
    if folder.endswith("/SKILL.md"):
        folder = folder[: -len("/SKILL.md")]
    elif folder.endswith("SKILL.md"):
        folder = folder[: -len("SKILL.md")]
    return folder.rstrip("/")


def fetch_skill_folder_hash(
    owner_repo: str,
    branch: str | None,
    skill_path: str,
    client: httpx.Client | None = None,
) -> str | None:
    """Return the tree SHA of `skill_path` in `owner_repo`.

    Tries `branch`, or main then master when no branch is known. An empty
    folder path returns the repository root tree SHA.

    Args:
        owner_repo: "owner/repo" on GitHub.
        branch: Branch name, or None.
        skill_path: Path of the skill's SKILL.md (or folder) inside the repo.
        client: Optional httpx client (injected in tests).

    Returns:
        The SHA, or None if it could not be determined.
    """
    folder = folder_path_for(skill_path)
    branches = [branch] if branch else list(_DEFAULT_BRANCHES)

    owns_client = client is None
    http = client or httpx.Client(headers=_HEADERS, follow_redirects=True)
    try:
        for candidate in branches:
            url = f"{GITHUB_API_BASE}/repos/{owner_repo}/git/trees/{candidate}"
            try:
                response = http.get(url, params={"recursive": "1"}, headers=_HEADERS)
            except httpx.HTTPError as e:
                logger.debug("tree_hash.request_failed", url=url, error=str(e))
                continue
            if response.status_code != 200:
                logger.debug("tree_hash.bad_status", url=url, status=response.status_code)
                continue

            try:
                payload = response.json()
            except ValueError:
                continue
            if not isinstance(payload, dict):
                continue

            sha = _match_tree(payload, folder)
            if sha:
                return sha
    finally:
        if owns_client:
            http.close()

    return None


def _match_tree(payload: dict, folder: str) -> str | None:
    if not folder:
        return _sha_of(payload)

    tree = payload.get("tree")
    if not isinstance(tree, list):
        return None
    for entry in tree:
        if isinstance(entry, dict) and entry.get("path") == folder:
            return _sha_of(entry)
    return None


def _sha_of(obj: dict) -> str | None:
    sha = obj.get("sha")
    return sha if isinstance(sha, str) and sha else None
