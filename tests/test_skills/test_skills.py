"""
Tests for skill discovery and installation.

Covers:
- parse_frontmatter / parse_skill_md: valid, missing and malformed blocks
- discover_skills: root short-circuit, priority dirs, deep walk, dedup
- select_skills: wildcard and case-insensitive matching
- sanitize_name: alphabet, trimming, idempotence
- install_skill: canonical store, symlink fan-out, copy mode, ignored dirs
- uninstall_skill / installed_entry / create_skill_template
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from skil.agents import get_agent
from skil.errors import FilesystemError, InvalidAgentError, MalformedFrontmatterError
from skil.paths import SkilPaths
from skil.skills.installer import (
    InstallMode,
    agent_skills_base,
    canonical_skills_dir,
    create_skill_template,
    install_skill,
    installed_entry,
    sanitize_name,
    uninstall_skill,
)
from skil.skills.loader import (
    Skill,
    discover_skills,
    parse_frontmatter,
    parse_skill_md,
    select_skills,
)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def paths(tmp_path: Path) -> SkilPaths:
    project = tmp_path / "project"
    project.mkdir()
    return SkilPaths.for_root(tmp_path / "home", cwd=project)


def _write_skill(directory: Path, name: str, description: str = "A skill", body: str = "Body.") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "SKILL.md").write_text(
        f"---\nname: {name}\ndescription: {description}\n---\n\n{body}\n"
    )
    return directory


# ── Tests: frontmatter parsing ───────────────────────────────────────


class TestFrontmatter:
    def test_parses_mapping(self):
        meta = parse_frontmatter("---\nname: pdf\ndescription: Read PDFs\n---\nbody")
        assert meta == {"name": "pdf", "description": "Read PDFs"}

    def test_no_opening_delimiter(self):
        assert parse_frontmatter("# Title\nname: pdf") is None

    def test_empty_block(self):
        assert parse_frontmatter("---\n---\nbody") is None

    def test_malformed_yaml_raises(self):
        with pytest.raises(MalformedFrontmatterError):
            parse_frontmatter("---\nname: [unclosed\n---\n")

    def test_non_mapping_raises(self):
        with pytest.raises(MalformedFrontmatterError, match="mapping"):
            parse_frontmatter("---\n- a\n- b\n---\n")

    def test_skill_md_requires_name_and_description(self, workspace: Path):
        path = workspace / "SKILL.md"
        path.write_text("---\nname: only-name\n---\n")
        assert parse_skill_md(path) is None

    def test_skill_md_rejects_empty_description(self, workspace: Path):
        path = workspace / "SKILL.md"
        path.write_text("---\nname: x\ndescription: ''\n---\n")
        assert parse_skill_md(path) is None

    def test_skill_md_rejects_non_string_name(self, workspace: Path):
        path = workspace / "SKILL.md"
        path.write_text("---\nname: 2024\ndescription: Yearly report\n---\n")
        with pytest.raises(MalformedFrontmatterError, match="name"):
            parse_skill_md(path)

    def test_skill_md_rejects_non_string_description(self, workspace: Path):
        path = workspace / "SKILL.md"
        path.write_text("---\nname: pdf\ndescription: [a, b]\n---\n")
        with pytest.raises(MalformedFrontmatterError, match="description"):
            parse_skill_md(path)

    def test_skill_md_invalid_utf8(self, workspace: Path):
        path = workspace / "SKILL.md"
        path.write_bytes(b"---\nname: bad\xff\ndescription: d\n---\n")
        with pytest.raises(MalformedFrontmatterError, match="UTF-8"):
            parse_skill_md(path)

    def test_skill_md_keeps_raw_content(self, workspace: Path):
        _write_skill(workspace, "pdf", body="Use pdftotext.")
        skill = parse_skill_md(workspace / "SKILL.md")
        assert skill.name == "pdf"
        assert skill.path == workspace
        assert "Use pdftotext." in skill.raw_content

    def test_malformed_error_names_the_file(self, workspace: Path):
        path = workspace / "SKILL.md"
        path.write_text("---\nname: [oops\n---\n")
        with pytest.raises(MalformedFrontmatterError, match="SKILL.md"):
            parse_skill_md(path)


# ── Tests: discovery ─────────────────────────────────────────────────


class TestDiscovery:
    def test_root_skill_short_circuits(self, workspace: Path):
        _write_skill(workspace, "root-skill")
        _write_skill(workspace / "skills" / "nested", "nested")
        skills = discover_skills(workspace)
        assert [s.name for s in skills] == ["root-skill"]

    def test_invalid_utf8_aborts_discovery(self, workspace: Path):
        _write_skill(workspace / "skills" / "good", "good")
        (workspace / "skills" / "bad").mkdir()
        (workspace / "skills" / "bad" / "SKILL.md").write_bytes(b"---\nname: bad\xff\n---\n")
        with pytest.raises(MalformedFrontmatterError, match="UTF-8"):
            discover_skills(workspace)

    def test_full_depth_keeps_scanning(self, workspace: Path):
        _write_skill(workspace, "root-skill")
        _write_skill(workspace / "skills" / "nested", "nested")
        skills = discover_skills(workspace, full_depth=True)
        assert [s.name for s in skills] == ["root-skill", "nested"]

    def test_priority_dirs_in_order(self, workspace: Path):
        _write_skill(workspace / "skills" / "b", "bravo")
        _write_skill(workspace / "skills" / "a", "alpha")
        _write_skill(workspace / ".claude" / "skills" / "c", "charlie")
        skills = discover_skills(workspace)
        assert [s.name for s in skills] == ["alpha", "bravo", "charlie"]

    def test_dedup_first_wins(self, workspace: Path):
        _write_skill(workspace / "skills" / "pdf", "pdf", description="first")
        _write_skill(workspace / ".codex" / "skills" / "pdf", "pdf", description="second")
        skills = discover_skills(workspace)
        assert len(skills) == 1
        assert skills[0].description == "first"

    def test_deep_walk_when_nothing_prioritized(self, workspace: Path):
        _write_skill(workspace / "a" / "b" / "deep", "deep")
        skills = discover_skills(workspace)
        assert [s.name for s in skills] == ["deep"]

    def test_walk_respects_depth_limit(self, workspace: Path):
        _write_skill(workspace / "1" / "2" / "3" / "4" / "5" / "6", "too-deep")
        assert discover_skills(workspace) == []

    def test_subpath(self, workspace: Path):
        _write_skill(workspace / "skills" / "pdf", "pdf")
        _write_skill(workspace / "other" / "x", "x")
        skills = discover_skills(workspace, "skills/pdf")
        assert [s.name for s in skills] == ["pdf"]

    def test_invalid_skill_dirs_ignored(self, workspace: Path):
        (workspace / "skills" / "broken").mkdir(parents=True)
        (workspace / "skills" / "broken" / "SKILL.md").write_text("no frontmatter")
        _write_skill(workspace / "skills" / "ok", "ok")
        assert [s.name for s in discover_skills(workspace)] == ["ok"]

    def test_empty_tree(self, workspace: Path):
        assert discover_skills(workspace) == []


# ── Tests: selection ─────────────────────────────────────────────────


class TestSelection:
    SKILLS = [
        Skill(name="Web-Design", description="d", path=Path("/a")),
        Skill(name="pdf", description="d", path=Path("/b")),
    ]

    def test_empty_selects_all(self):
        assert select_skills(self.SKILLS, []) == self.SKILLS

    def test_wildcard_selects_all(self):
        assert select_skills(self.SKILLS, ["*"]) == self.SKILLS

    def test_case_insensitive(self):
        assert [s.name for s in select_skills(self.SKILLS, ["web-design"])] == ["Web-Design"]

    def test_discovery_order_kept(self):
        selected = select_skills(self.SKILLS, ["PDF", "web-design"])
        assert [s.name for s in selected] == ["Web-Design", "pdf"]

    def test_no_match(self):
        assert select_skills(self.SKILLS, ["missing"]) == []


# ── Tests: sanitize_name ─────────────────────────────────────────────


class TestSanitizeName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Web Design", "web-design"),
            ("../evil", "evil"),
            ("a//b\\c", "a-b-c"),
            ("--x--", "x"),
            ("v1.2_beta", "v1.2_beta"),
            ("!!!", "unnamed-skill"),
            ("", "unnamed-skill"),
        ],
    )
    def test_examples(self, raw: str, expected: str):
        assert sanitize_name(raw) == expected

    @pytest.mark.parametrize("raw", ["Web Design", "../evil", "Ünïcode Näme", "x" * 300])
    def test_idempotent_and_safe(self, raw: str):
        once = sanitize_name(raw)
        assert sanitize_name(once) == once
        assert len(once) <= 255
        assert all(c.isascii() and (c.isalnum() or c in "._-") for c in once)
        assert not once.startswith(("-", ".")) and not once.endswith(("-", "."))


# ── Tests: install ───────────────────────────────────────────────────


class TestInstall:
    def _source_skill(self, workspace: Path) -> Skill:
        src = _write_skill(workspace / "src" / "web", "Web Design")
        (src / "scripts").mkdir()
        (src / "scripts" / "run.sh").write_text("echo hi")
        (src / "node_modules" / "dep").mkdir(parents=True)
        (src / "node_modules" / "dep" / "index.js").write_text("")
        (src / ".git").mkdir()
        return parse_skill_md(src / "SKILL.md")

    def test_symlink_install(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        agent = get_agent("codex", paths)
        target = install_skill(skill, agent, paths)

        canonical = paths.cwd / ".agents" / "skills" / "web-design"
        assert target == paths.cwd / ".codex" / "skills" / "web-design"
        assert (canonical / "SKILL.md").is_file()
        assert (canonical / "scripts" / "run.sh").is_file()
        assert not (canonical / "node_modules").exists()
        assert not (canonical / ".git").exists()
        assert target.is_symlink()
        assert target.resolve() == canonical.resolve()

    def test_nested_ignored_dirs_skipped(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        (skill.path / "scripts" / "build").mkdir()
        (skill.path / "scripts" / "build" / "out.js").write_text("")
        (skill.path / "lib" / "node_modules" / "dep").mkdir(parents=True)
        (skill.path / "lib" / "node_modules" / "dep" / "index.js").write_text("")
        (skill.path / "lib" / "util.py").write_text("")
        (skill.path / "lib" / ".cache").mkdir()

        agent = get_agent("claude-code", paths)
        target = install_skill(skill, agent, paths, mode=InstallMode.COPY)
        canonical = canonical_skills_dir(paths) / "web-design"

        for root in (canonical, target):
            assert (root / "scripts" / "run.sh").is_file()
            assert (root / "lib" / "util.py").is_file()
            assert not (root / "scripts" / "build").exists()
            assert not (root / "lib" / "node_modules").exists()
            assert not (root / "lib" / ".cache").exists()

    def test_copy_install(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        agent = get_agent("claude-code", paths)
        target = install_skill(skill, agent, paths, mode=InstallMode.COPY)
        assert not target.is_symlink()
        assert (target / "SKILL.md").is_file()
        assert (target / "scripts" / "run.sh").is_file()

    def test_symlink_failure_falls_back_to_copy(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        agent = get_agent("codex", paths)
        with patch("skil.skills.installer.os.symlink", side_effect=OSError("unsupported")):
            target = install_skill(skill, agent, paths)
        assert not target.is_symlink()
        assert (target / "SKILL.md").is_file()

    def test_reinstall_replaces_stale_files(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        agent = get_agent("codex", paths)
        install_skill(skill, agent, paths)
        canonical = canonical_skills_dir(paths) / "web-design"
        (canonical / "stale.txt").write_text("old")
        install_skill(skill, agent, paths)
        assert not (canonical / "stale.txt").exists()

    def test_copy_over_previous_symlink(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        agent = get_agent("codex", paths)
        install_skill(skill, agent, paths)
        target = install_skill(skill, agent, paths, mode=InstallMode.COPY)
        assert not target.is_symlink()
        assert (target / "SKILL.md").is_file()

    def test_global_install(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        agent = get_agent("codex", paths)
        target = install_skill(skill, agent, paths, global_=True)
        assert target == paths.codex_home / "skills" / "web-design"
        assert (paths.home / ".agents" / "skills" / "web-design" / "SKILL.md").is_file()

    def test_global_unsupported_agent(self, paths: SkilPaths):
        from skil.agents import AgentConfig

        agent = AgentConfig(name="local-only", display_name="Local", skills_dir=".lo/skills")
        with pytest.raises(InvalidAgentError, match="global"):
            agent_skills_base(agent, paths, global_=True)

    def test_installed_entry(self, workspace: Path, paths: SkilPaths):
        skill = self._source_skill(workspace)
        codex = get_agent("codex", paths)
        claude = get_agent("claude-code", paths)
        install_skill(skill, codex, paths)
        install_skill(skill, claude, paths, mode=InstallMode.COPY)

        assert installed_entry(codex, "Web Design", paths).is_symlink is True
        assert installed_entry(claude, "web-design", paths).is_symlink is False
        assert installed_entry(get_agent("cursor", paths), "web-design", paths) is None


# ── Tests: uninstall and templates ───────────────────────────────────


class TestUninstall:
    def test_removes_agent_entries_and_canonical(self, workspace: Path, paths: SkilPaths):
        skill = parse_skill_md(_write_skill(workspace / "src" / "pdf", "pdf") / "SKILL.md")
        codex = get_agent("codex", paths)
        install_skill(skill, codex, paths)

        removed = uninstall_skill("pdf", [codex], paths)
        assert paths.cwd / ".codex" / "skills" / "pdf" in removed
        assert not (paths.cwd / ".codex" / "skills" / "pdf").exists()
        assert not (canonical_skills_dir(paths) / "pdf").exists()

    def test_keep_canonical(self, workspace: Path, paths: SkilPaths):
        skill = parse_skill_md(_write_skill(workspace / "src" / "pdf", "pdf") / "SKILL.md")
        codex = get_agent("codex", paths)
        install_skill(skill, codex, paths)

        uninstall_skill("pdf", [codex], paths, remove_canonical=False)
        assert (canonical_skills_dir(paths) / "pdf" / "SKILL.md").is_file()

    def test_nothing_installed(self, paths: SkilPaths):
        assert uninstall_skill("ghost", [get_agent("codex", paths)], paths) == []


class TestTemplate:
    def test_creates_parseable_skill(self, workspace: Path):
        path = create_skill_template(workspace / "my-skill", "my-skill")
        skill = parse_skill_md(path)
        assert skill is not None
        assert skill.name == "my-skill"

    def test_refuses_overwrite(self, workspace: Path):
        create_skill_template(workspace, "x")
        with pytest.raises(FilesystemError, match="already exists"):
            create_skill_template(workspace, "x")


@pytest.mark.skipif(os.name == "nt", reason="symlink semantics")
class TestSymlinkTarget:
    def test_link_points_at_canonical_store(self, workspace: Path, paths: SkilPaths):
        skill = parse_skill_md(_write_skill(workspace / "src" / "a", "a") / "SKILL.md")
        target = install_skill(skill, get_agent("goose", paths), paths)
        assert Path(os.readlink(target)) == canonical_skills_dir(paths) / "a"
