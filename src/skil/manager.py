"""
Skill Manager — The add / remove / list / check / update / init / find pipelines.

Each public method is one CLI command minus the presentation: it takes
plain arguments, raises SkilError subclasses on terminal failures and
returns a result object the CLI renders.

    add:    resolve source -> fetch (git) -> discover -> select -> install
            into every agent -> record config + lock
    update: check every recorded source against its remote and re-run
            add for the stale ones, one at a time
"""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import structlog

from .agents import AgentConfig, agent_configs, resolve_agents, unknown_agent_names
from .config.lock import HashFetcher, remove_lock_entry, update_lock_for_skill
from .config.schema import Settings, SkilSource
from .config.sources import (
    ConfigLocation,
    config_location,
    config_location_auto,
    read_config,
    remove_skills_from_config,
    update_config,
)
from .errors import (
    GitOperationError,
    InvalidAgentError,
    NoAgentsSelectedError,
    NoMatchSelectedError,
    NoSkillsFoundError,
    SkilError,
)
from .logging.human import HumanLog
from .paths import SkilPaths
from .search import SearchResult, SkillSearchClient
from .skills import (
    InstallMode,
    Skill,
    canonical_skills_dir,
    create_skill_template,
    discover_skills,
    install_skill,
    installed_entry,
    parse_skill_md,
    sanitize_name,
    select_skills,
    uninstall_skill,
)
from .skills.loader import SKILL_FILE
from .sources import (
    GitSource,
    SourceInfo,
    clone_repo,
    clone_url_for,
    fetch_skill_folder_hash,
    head_revision,
    parse_source,
    remote_revision,
    source_info,
    source_string_for,
)

logger = structlog.get_logger()

Confirm = Callable[[list[Skill]], bool]

STATUS_UP_TO_DATE = "up-to-date"
STATUS_UPDATE_AVAILABLE = "update-available"
STATUS_SKIPPED = "skipped"
STATUS_ERROR = "error"


# ── Results ──────────────────────────────────────────────────────────────


@dataclass
class AddResult:
    """Outcome of `add`."""

    source: SourceInfo
    discovered: list[Skill]
    installed: list[Skill] = field(default_factory=list)
    agents: list[AgentConfig] = field(default_factory=list)
    revision: str | None = None
    listed_only: bool = False
    cancelled: bool = False


@dataclass
class RemoveResult:
    removed: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    paths: list[Path] = field(default_factory=list)


@dataclass
class InstalledSkill:
    """A skill in the canonical store and the agents that expose it."""

    name: str
    description: str
    path: Path
    # agent display name -> True if symlinked, False if copied
    agents: dict[str, bool] = field(default_factory=dict)


@dataclass
class SourceStatus:
    """Result of comparing a recorded source with its remote."""

    key: str
    source_type: str
    status: str
    local_revision: str | None = None
    remote_revision: str | None = None
    error: str | None = None

    @property
    def is_stale(self) -> bool:
        return self.status == STATUS_UPDATE_AVAILABLE


@dataclass
class UpdateResult:
    updated: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


# ── Manager ──────────────────────────────────────────────────────────────


class SkillManager:
    """Runs skil commands against one set of resolved paths.

    Usage:
        manager = SkillManager(SkilPaths.from_env(), settings)
        result = manager.add("vercel-labs/agent-skills", skills=["web-design"])
    """

    def __init__(
        self,
        paths: SkilPaths,
        settings: Settings | None = None,
        fetch_hash: HashFetcher = fetch_skill_folder_hash,
        search_client: SkillSearchClient | None = None,
    ) -> None:
        self.paths = paths
        self.settings = settings or Settings()
        self.fetch_hash = fetch_hash
        self.search_client = search_client
        self.log = logger.bind(component="manager")
        self.hlog = HumanLog(self.log)

    # ── add ──────────────────────────────────────────────────────────────

    def add(
        self,
        source: str,
        global_: bool = False,
        agents: list[str] | tuple[str, ...] = (),
        skills: list[str] | tuple[str, ...] = (),
        copy: bool = False,
        list_only: bool = False,
        yes: bool = False,
        all_: bool = False,
        full_depth: bool = False,
        confirm: Confirm | None = None,
    ) -> AddResult:
        """Install skills from a source.

        Args:
            source: Local path, owner/repo shorthand or git URL.
            global_: Install into the home directory instead of the project.
            agents: Agent names; empty detects installed agents, ["*"] is all.
            skills: Skill names; empty or ["*"] selects every discovered skill.
            copy: Copy into agent directories instead of symlinking.
            list_only: Only discover and report, install nothing.
            yes: Skip confirmation.
            all_: Every skill into every agent without confirmation.
            full_depth: Keep scanning below a root SKILL.md.
            confirm: Asked before installing several skills that were not
                named explicitly; returning False cancels.

        Raises:
            InvalidSourceError, SourceNotFoundError: Unusable source string.
            GitOperationError: Clone failed.
            NoSkillsFoundError: The source holds no valid skill.
            NoMatchSelectedError: None of the requested skills exist.
            InvalidAgentError: Unknown agent name requested.
            NoAgentsSelectedError: No agent to install into.
            FilesystemError: Install or state write failed.
        """
        if all_:
            skills, agents, yes = ["*"], ["*"], True

        unknown = unknown_agent_names(list(agents))
        if unknown:
            raise InvalidAgentError(f"Unknown agent(s): {', '.join(unknown)}")

        parsed = parse_source(source)
        info = source_info(parsed)
        self.hlog.source_resolved(info.source_id, info.source_type)

        if isinstance(parsed, GitSource):
            with tempfile.TemporaryDirectory(prefix="skil-") as tmp:
                repo_dir = Path(tmp) / "repo"
                self.hlog.cloning(parsed.url, info.github_branch)
                clone_repo(parsed.url, repo_dir, branch=info.github_branch)
                revision = head_revision(repo_dir)
                return self._add_from(
                    repo_dir, parsed.subpath, info, revision,
                    global_, list(agents), list(skills), copy, list_only, yes,
                    full_depth, confirm,
                )

        return self._add_from(
            parsed.path, None, info, None,
            global_, list(agents), list(skills), copy, list_only, yes,
            full_depth, confirm,
        )

    def _add_from(
        self,
        base: Path,
        subpath: str | None,
        info: SourceInfo,
        revision: str | None,
        global_: bool,
        agents: list[str],
        skills: list[str],
        copy: bool,
        list_only: bool,
        yes: bool,
        full_depth: bool,
        confirm: Confirm | None,
    ) -> AddResult:
        discovered = discover_skills(base, subpath, full_depth=full_depth)
        if not discovered:
            raise NoSkillsFoundError(f"No skills found in {info.source_id}")
        self.hlog.found([s.name for s in discovered])

        result = AddResult(source=info, discovered=discovered, revision=revision)
        if list_only:
            result.listed_only = True
            return result

        selected = select_skills(discovered, skills)
        if not selected:
            available = ", ".join(s.name for s in discovered)
            raise NoMatchSelectedError(
                f"No skills matched: {', '.join(skills)} (available: {available})"
            )

        if len(selected) > 1 and not skills and not yes and confirm is not None:
            if not confirm(selected):
                result.cancelled = True
                return result

        targets = resolve_agents(agents, self.paths)
        if global_:
            targets = [a for a in targets if a.supports_global]
        if not targets:
            raise NoAgentsSelectedError("No agents selected")

        mode = InstallMode.COPY if copy else InstallMode.SYMLINK
        for skill in selected:
            for agent in targets:
                install_skill(skill, agent, self.paths, global_=global_, mode=mode)
            self.hlog.installed(skill.name, [a.display_name for a in targets], copy)
            update_lock_for_skill(skill, info, base, self.paths, fetch_hash=self.fetch_hash)

        location = config_location(self.paths, global_)
        default = SkilSource(
            source_type=info.source_type,
            branch=info.github_branch,
            subpath=subpath,
        )
        update_config(
            location.path,
            info.source_id,
            default,
            [s.name for s in selected],
            revision=revision,
        )

        result.installed = selected
        result.agents = targets
        self.log.info(
            "add.complete",
            source=info.source_id,
            skills=[s.name for s in selected],
            agents=[a.name for a in targets],
            global_=global_,
        )
        return result

    # ── remove ───────────────────────────────────────────────────────────

    def remove(
        self,
        names: list[str] | tuple[str, ...] = (),
        global_: bool = False,
        agents: list[str] | tuple[str, ...] = (),
        all_: bool = False,
    ) -> RemoveResult:
        """Uninstall skills.

        Without agents the skill is removed from every agent, the canonical
        store, the config and the lock. With agents only those agent entries
        go; the rest is dropped once no agent exposes the skill anymore.

        Raises:
            InvalidAgentError: Unknown agent name requested.
            FilesystemError: A path could not be removed.
        """
        unknown = unknown_agent_names(list(agents))
        if unknown:
            raise InvalidAgentError(f"Unknown agent(s): {', '.join(unknown)}")

        if all_:
            names = [s.name for s in self.list_installed(global_=global_)]
            agents = ()

        all_agents = agent_configs(self.paths)
        targets = resolve_agents(list(agents), self.paths) if agents else all_agents

        result = RemoveResult()
        fully_removed: list[str] = []
        for name in names:
            others = [a for a in all_agents if a not in targets]
            still_used = any(installed_entry(a, name, self.paths, global_) for a in others)
            canonical = canonical_skills_dir(self.paths, global_) / sanitize_name(name)
            had_canonical = canonical.exists() or canonical.is_symlink()

            removed = uninstall_skill(
                name, targets, self.paths, global_=global_, remove_canonical=not still_used
            )
            if not removed:
                result.not_found.append(name)
                continue

            result.removed.append(name)
            result.paths.extend(removed)
            self.hlog.removed(name, len(removed))
            if had_canonical and not still_used:
                fully_removed.append(name)

        if fully_removed:
            location = config_location(self.paths, global_)
            remove_skills_from_config(location.path, fully_removed)
            other_scope = canonical_skills_dir(self.paths, not global_)
            for name in fully_removed:
                if not (other_scope / sanitize_name(name)).exists():
                    remove_lock_entry(name, self.paths)

        self.log.info("remove.complete", removed=result.removed, not_found=result.not_found)
        return result

    # ── list ─────────────────────────────────────────────────────────────

    def list_installed(
        self,
        global_: bool = False,
        agents: list[str] | tuple[str, ...] = (),
    ) -> list[InstalledSkill]:
        """Skills in the canonical store of the scope, with their agents.

        With agents, only skills exposed by at least one of them are listed.
        """
        unknown = unknown_agent_names(list(agents))
        if unknown:
            raise InvalidAgentError(f"Unknown agent(s): {', '.join(unknown)}")

        store = canonical_skills_dir(self.paths, global_)
        if not store.is_dir():
            return []

        targets = resolve_agents(list(agents), self.paths) if agents else agent_configs(self.paths)

        installed: list[InstalledSkill] = []
        for skill_dir in sorted(store.iterdir(), key=lambda p: p.name):
            if not (skill_dir / SKILL_FILE).is_file():
                continue
            skill = parse_skill_md(skill_dir / SKILL_FILE)
            item = InstalledSkill(
                name=skill.name if skill else skill_dir.name,
                description=skill.description if skill else "",
                path=skill_dir,
            )
            for agent in targets:
                entry = installed_entry(agent, skill_dir.name, self.paths, global_)
                if entry:
                    item.agents[agent.display_name] = entry.is_symlink
            if agents and not item.agents:
                continue
            installed.append(item)
        return installed

    # ── check / update ───────────────────────────────────────────────────

    def check(self, global_: bool | None = None) -> list[SourceStatus]:
        """Compare every recorded source revision with its remote.

        Args:
            global_: Scope to check; None uses the project config when it
                exists, the global one otherwise.
        """
        location = self._location(global_)
        config = read_config(location.path)

        statuses: list[SourceStatus] = []
        for key, entry in config.sources.items():
            url = clone_url_for(key, entry.source_type)
            if url is None:
                statuses.append(SourceStatus(key, entry.source_type, STATUS_SKIPPED))
                continue

            self.hlog.checking(key)
            try:
                remote = remote_revision(url, entry.branch)
            except GitOperationError as e:
                self.log.warning("check.remote_failed", source=key, error=str(e))
                statuses.append(
                    SourceStatus(key, entry.source_type, STATUS_ERROR,
                                 local_revision=entry.revision, error=str(e))
                )
                continue

            stale = entry.revision is None or entry.revision != remote
            statuses.append(
                SourceStatus(
                    key,
                    entry.source_type,
                    STATUS_UPDATE_AVAILABLE if stale else STATUS_UP_TO_DATE,
                    local_revision=entry.revision,
                    remote_revision=remote,
                )
            )
        return statuses

    def update(self, global_: bool | None = None) -> UpdateResult:
        """Reinstall every stale source, one at a time.

        A failing source is recorded and never stops the others.
        """
        location = self._location(global_)
        config = read_config(location.path)
        result = UpdateResult()

        for status in self.check(global_=location.is_global):
            if status.status == STATUS_SKIPPED:
                continue
            if status.status == STATUS_UP_TO_DATE:
                result.up_to_date.append(status.key)
                continue
            if status.status == STATUS_ERROR:
                result.failed[status.key] = status.error or "unknown error"
                self.hlog.update_failed(status.key, result.failed[status.key])
                continue

            try:
                self._reinstall(status.key, config.sources[status.key], location.is_global)
            except SkilError as e:
                result.failed[status.key] = str(e)
                self.hlog.update_failed(status.key, str(e))
                self.log.warning("update.source_failed", source=status.key, error=str(e))
                continue
            result.updated.append(status.key)
            self.hlog.source_updated(status.key)

        self.log.info(
            "update.complete",
            updated=len(result.updated),
            failed=len(result.failed),
            up_to_date=len(result.up_to_date),
        )
        return result

    def _reinstall(self, key: str, entry: SkilSource, global_: bool) -> AddResult:
        """Re-run add for a recorded source into the agents that hold its skills."""
        source = source_string_for(key, entry.source_type, entry.branch, entry.subpath)

        agent_names: list[str] = []
        copies = 0
        found = 0
        for agent in agent_configs(self.paths):
            for name in entry.skills:
                held = installed_entry(agent, name, self.paths, global_)
                if held is None:
                    continue
                found += 1
                copies += 0 if held.is_symlink else 1
                if agent.name not in agent_names:
                    agent_names.append(agent.name)

        return self.add(
            source,
            global_=global_,
            agents=agent_names,
            skills=list(entry.skills),
            copy=found > 0 and copies == found,
            yes=True,
        )

    def _location(self, global_: bool | None) -> ConfigLocation:
        if global_ is None:
            return config_location_auto(self.paths)
        return config_location(self.paths, global_)

    # ── init / find ──────────────────────────────────────────────────────

    def init_skill(self, name: str | None = None) -> Path:
        """Create `<name>/SKILL.md` (or `./SKILL.md`) from the template."""
        directory = self.paths.cwd / name if name else self.paths.cwd
        skill_name = name or self.paths.cwd.name
        path = create_skill_template(directory, skill_name)
        self.log.info("skill.created", name=skill_name, path=str(path))
        return path

    def find(self, query: str = "") -> list[SearchResult]:
        client = self.search_client or SkillSearchClient(self.settings.search)
        return client.search(query)
