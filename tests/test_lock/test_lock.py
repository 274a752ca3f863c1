"""
Tests for the skill lock file (~/.agents/.skill-lock.json).
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from skil.config.lock import (
    lock_path,
    read_lock,
    remove_lock_entry,
    update_lock_for_skill,
    write_lock,
)
from skil.config.schema import LOCK_VERSION, SkillLockFile
from skil.errors import LockParseError
from skil.paths import SkilPaths
from skil.skills.loader import Skill
from skil.sources.resolver import SourceInfo
from skil.sources.tree_hash import fetch_skill_folder_hash


@pytest.fixture
def paths(tmp_path: Path) -> SkilPaths:
    return SkilPaths.for_root(tmp_path / "home", cwd=tmp_path)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    base = tmp_path / "clone"
    (base / "skills" / "pdf").mkdir(parents=True)
    return base


GITHUB_INFO = SourceInfo(
    source_id="o/r",
    source_type="github",
    source_url="https://github.com/o/r.git",
    github_owner_repo="o/r",
    github_branch="main",
)


def _skill(path: Path, name: str = "pdf") -> Skill:
    return Skill(name=name, description="d", path=path)


# ── Tests: read / write ──────────────────────────────────────────────


class TestReadWrite:
    def test_location(self, paths: SkilPaths):
        assert lock_path(paths) == paths.home / ".agents" / ".skill-lock.json"

    def test_missing_file(self, paths: SkilPaths):
        lock = read_lock(paths)
        assert lock.version == LOCK_VERSION
        assert lock.skills == {}

    def test_written_as_camel_case_json(self, paths: SkilPaths, repo: Path):
        update_lock_for_skill(
            _skill(repo / "skills" / "pdf"), GITHUB_INFO, repo, paths,
            fetch_hash=lambda *a: "tree-sha",
        )
        data = json.loads(lock_path(paths).read_text())
        entry = data["skills"]["pdf"]
        assert data["version"] == 3
        assert entry["sourceType"] == "github"
        assert entry["sourceUrl"] == "https://github.com/o/r.git"
        assert entry["skillPath"] == "skills/pdf/SKILL.md"
        assert entry["sourceBranch"] == "main"
        assert entry["skillFolderHash"] == "tree-sha"
        assert entry["installedAt"] == entry["updatedAt"]

    def test_old_version_is_reset(self, paths: SkilPaths):
        path = lock_path(paths)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"version": 2, "skills": {"old": {"whatever": 1}}}))
        lock = read_lock(paths)
        assert lock.version == LOCK_VERSION
        assert lock.skills == {}

    def test_invalid_json(self, paths: SkilPaths):
        path = lock_path(paths)
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        with pytest.raises(LockParseError):
            read_lock(paths)

    def test_invalid_entry(self, paths: SkilPaths):
        path = lock_path(paths)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"version": 3, "skills": {"x": {"source": "s"}}}))
        with pytest.raises(LockParseError):
            read_lock(paths)

    def test_write_then_read(self, paths: SkilPaths):
        write_lock(paths, SkillLockFile())
        assert read_lock(paths) == SkillLockFile()


# ── Tests: update_lock_for_skill ─────────────────────────────────────


class TestUpdateLock:
    def test_installed_at_preserved(self, paths: SkilPaths, repo: Path):
        skill = _skill(repo / "skills" / "pdf")
        first = update_lock_for_skill(skill, GITHUB_INFO, repo, paths, fetch_hash=lambda *a: None)
        second = update_lock_for_skill(skill, GITHUB_INFO, repo, paths, fetch_hash=lambda *a: None)
        assert second.installed_at == first.installed_at

    def test_updated_at_advances(self, paths: SkilPaths, repo: Path):
        skill = _skill(repo / "skills" / "pdf")
        t0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        clock = MagicMock()
        clock.now.side_effect = [t0, t0 + timedelta(minutes=5)]
        with patch("skil.config.lock.datetime", clock):
            first = update_lock_for_skill(skill, GITHUB_INFO, repo, paths, fetch_hash=lambda *a: None)
            second = update_lock_for_skill(skill, GITHUB_INFO, repo, paths, fetch_hash=lambda *a: None)

        assert first.installed_at == first.updated_at == t0.isoformat()
        assert second.installed_at == t0.isoformat()
        assert second.updated_at == (t0 + timedelta(minutes=5)).isoformat()
        assert datetime.fromisoformat(second.updated_at) > datetime.fromisoformat(first.updated_at)

    def test_hash_only_for_github(self, paths: SkilPaths, repo: Path):
        fetch = MagicMock(return_value="sha")
        info = SourceInfo(source_id="g/p", source_type="gitlab", source_url="https://gitlab.com/g/p.git",
                          github_owner_repo="g/p")
        entry = update_lock_for_skill(_skill(repo / "skills" / "pdf"), info, repo, paths, fetch_hash=fetch)
        assert entry.skill_folder_hash == ""
        fetch.assert_not_called()

    def test_hash_lookup_arguments(self, paths: SkilPaths, repo: Path):
        fetch = MagicMock(return_value="sha")
        update_lock_for_skill(_skill(repo / "skills" / "pdf"), GITHUB_INFO, repo, paths, fetch_hash=fetch)
        fetch.assert_called_once_with("o/r", "main", "skills/pdf/SKILL.md")

    def test_failed_hash_is_empty(self, paths: SkilPaths, repo: Path):
        entry = update_lock_for_skill(
            _skill(repo / "skills" / "pdf"), GITHUB_INFO, repo, paths, fetch_hash=lambda *a: None
        )
        assert entry.skill_folder_hash == ""

    def test_malformed_tree_response_leaves_hash_empty(self, paths: SkilPaths, repo: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"tree": [{"path": "skills/pdf", "sha": 123}]})

        client = httpx.Client(transport=httpx.MockTransport(handler))

        def fetch(owner_repo: str, branch: str | None, skill_path: str) -> str | None:
            return fetch_skill_folder_hash(owner_repo, branch, skill_path, client=client)

        entry = update_lock_for_skill(_skill(repo / "skills" / "pdf"), GITHUB_INFO, repo, paths, fetch_hash=fetch)
        assert entry.skill_folder_hash == ""
        assert read_lock(paths).skills["pdf"].skill_folder_hash == ""

    def test_root_skill_path(self, paths: SkilPaths, repo: Path):
        entry = update_lock_for_skill(_skill(repo), GITHUB_INFO, repo, paths, fetch_hash=lambda *a: None)
        assert entry.skill_path == "SKILL.md"

    def test_local_source(self, paths: SkilPaths, repo: Path):
        info = SourceInfo(source_id=str(repo), source_type="local", source_url=str(repo))
        entry = update_lock_for_skill(_skill(repo / "skills" / "pdf"), info, repo, paths)
        assert entry.source == str(repo)
        assert entry.skill_folder_hash == ""
        assert entry.source_branch is None


class TestRemoveEntry:
    def test_remove_case_insensitive(self, paths: SkilPaths, repo: Path):
        update_lock_for_skill(
            _skill(repo / "skills" / "pdf", name="PDF"), GITHUB_INFO, repo, paths,
            fetch_hash=lambda *a: None,
        )
        assert remove_lock_entry("pdf", paths) is True
        assert read_lock(paths).skills == {}

    def test_remove_missing(self, paths: SkilPaths):
        assert remove_lock_entry("ghost", paths) is False

    def test_remove_by_directory_name(self, paths: SkilPaths, repo: Path):
        update_lock_for_skill(
            _skill(repo / "skills" / "pdf", name="Web Design"), GITHUB_INFO, repo, paths,
            fetch_hash=lambda *a: None,
        )
        update_lock_for_skill(
            _skill(repo / "skills" / "pdf", name="pdf"), GITHUB_INFO, repo, paths,
            fetch_hash=lambda *a: None,
        )
        assert remove_lock_entry("web-design", paths) is True
        assert list(read_lock(paths).skills) == ["pdf"]
