"""
Main CLI for skil using Click.

Commands (aliases in parentheses):
    add (a, install, i)   install skills from a source
    remove (rm, r)        uninstall skills
    list (ls)             show installed skills
    find (search, f, s)   search the remote skills directory
    check                 report sources with upstream changes
    update (upgrade)      reinstall sources with upstream changes
    init                  create a SKILL.md template
"""

import functools
import sys
from pathlib import Path
from typing import Any, Callable

import click

from .config.loader import load_settings
from .errors import ConfigParseError, LockParseError, SkilError
from .logging import configure_logging
from .manager import (
    STATUS_ERROR,
    STATUS_SKIPPED,
    STATUS_UP_TO_DATE,
    SkillManager,
)
from .paths import SkilPaths
from .skills import Skill

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2
EXIT_CONFIG_ERROR = 3
EXIT_INTERRUPTED = 130

_VERSION = "0.1.0"


def _handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn SkilError and Ctrl+C into an `Error: ...` line and an exit code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("\nInterrupted.", err=True)
            sys.exit(EXIT_INTERRUPTED)
        except (ConfigParseError, LockParseError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(EXIT_CONFIG_ERROR)
        except SkilError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(EXIT_FAILED)

    return wrapper


def _split_names(values: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated option values."""
    names: list[str] = []
    for value in values:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


def _confirm_install(selected: list[Skill]) -> bool:
    names = ", ".join(s.name for s in selected)
    return click.confirm(f"Install {len(selected)} skills ({names})?", default=True)


@click.group()
@click.version_option(version=_VERSION, prog_name="skil")
@click.option("-v", "--verbose", count=True, help="Verbose technical logs (-v info, -vv debug)")
@click.option("--quiet", is_flag=True, help="Only print results and errors")
@click.option("--log-file", type=click.Path(path_type=Path), help="Write JSON logs to this file")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(path_type=Path),
    help="Path to a YAML settings file",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: int,
    quiet: bool,
    log_file: Path | None,
    settings_path: Path | None,
) -> None:
    """skil - Package manager for AI agent skills.

    Installs SKILL.md bundles from local paths, GitHub shorthand or git URLs
    into the skills directories of your coding agents.
    """
    paths = SkilPaths.from_env()
    try:
        settings = load_settings(
            paths,
            settings_path=settings_path,
            cli_args={"verbose": verbose, "log_file": str(log_file) if log_file else None},
        )
    except ConfigParseError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    configure_logging(settings.logging, quiet=quiet)
    ctx.obj = SkillManager(paths, settings)


# ── ADD ──────────────────────────────────────────────────────────────────


@main.command()
@click.argument("source")
@click.option("-g", "--global", "global_", is_flag=True, help="Install into your home directory")
@click.option("--copy", is_flag=True, help="Copy into agent directories instead of symlinking")
@click.option("-a", "--agent", "agents", multiple=True, help="Target agent (repeatable, '*' for all)")
@click.option("-s", "--skill", "skills", multiple=True, help="Skill to install (repeatable, '*' for all)")
@click.option("-l", "--list", "list_only", is_flag=True, help="List the skills in the source and exit")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.option("--all", "all_", is_flag=True, help="All skills into all agents, no confirmation")
@click.option("--full-depth", is_flag=True, help="Keep searching below a root SKILL.md")
@click.pass_obj
@_handle_errors
def add(
    manager: SkillManager,
    source: str,
    global_: bool,
    copy: bool,
    agents: tuple[str, ...],
    skills: tuple[str, ...],
    list_only: bool,
    yes: bool,
    all_: bool,
    full_depth: bool,
) -> None:
    """Install skills from SOURCE (path, owner/repo or git URL)."""
    result = manager.add(
        source,
        global_=global_,
        agents=_split_names(agents),
        skills=_split_names(skills),
        copy=copy,
        list_only=list_only,
        yes=yes,
        all_=all_,
        full_depth=full_depth,
        confirm=_confirm_install,
    )

    if result.listed_only:
        click.echo(f"Skills in {result.source.source_id}:")
        for skill in result.discovered:
            click.echo(f"  {skill.name:24s} {skill.description}")
        return

    if result.cancelled:
        click.echo("Installation cancelled.")
        return

    scope = "globally" if global_ else "in this project"
    agent_names = ", ".join(a.display_name for a in result.agents)
    click.echo(
        f"Installed {len(result.installed)} skill(s) {scope} for {agent_names}: "
        f"{', '.join(s.name for s in result.installed)}"
    )


# ── REMOVE ───────────────────────────────────────────────────────────────


@main.command()
@click.argument("names", nargs=-1)
@click.option("-g", "--global", "global_", is_flag=True, help="Remove from your home directory")
@click.option("-a", "--agent", "agents", multiple=True, help="Only remove from this agent (repeatable)")
@click.option("-s", "--skill", "skills", multiple=True, help="Skill to remove (repeatable)")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.option("--all", "all_", is_flag=True, help="Remove every installed skill")
@click.pass_obj
@_handle_errors
def remove(
    manager: SkillManager,
    names: tuple[str, ...],
    global_: bool,
    agents: tuple[str, ...],
    skills: tuple[str, ...],
    yes: bool,
    all_: bool,
) -> None:
    """Uninstall skills by name."""
    requested = list(names) + _split_names(skills)
    if not requested and not all_:
        click.echo("Error: No skills specified (pass names, --skill or --all)", err=True)
        sys.exit(EXIT_FAILED)

    if not yes:
        target = "all installed skills" if all_ else ", ".join(requested)
        if not click.confirm(f"Remove {target}?", default=False):
            click.echo("Removal cancelled.")
            return

    result = manager.remove(requested, global_=global_, agents=_split_names(agents), all_=all_)

    for name in result.removed:
        click.echo(f"Removed {name}")
    for name in result.not_found:
        click.echo(f"Not installed: {name}", err=True)

    if result.not_found and not result.removed:
        sys.exit(EXIT_FAILED)
    if result.not_found:
        sys.exit(EXIT_PARTIAL)


# ── LIST ─────────────────────────────────────────────────────────────────


@main.command("list")
@click.option("-g", "--global", "global_", is_flag=True, help="List global skills")
@click.option("-a", "--agent", "agents", multiple=True, help="Only skills exposed to this agent")
@click.pass_obj
@_handle_errors
def list_(manager: SkillManager, global_: bool, agents: tuple[str, ...]) -> None:
    """List installed skills."""
    installed = manager.list_installed(global_=global_, agents=_split_names(agents))
    if not installed:
        click.echo("  No skills installed.")
        return

    for item in installed:
        click.echo(f"  {item.name:24s} {item.description}")
        if item.agents:
            labels = [
                name if is_symlink else f"{name} (copy)"
                for name, is_symlink in item.agents.items()
            ]
            click.echo(f"    agents: {', '.join(labels)}")


# ── FIND ─────────────────────────────────────────────────────────────────


@main.command()
@click.argument("query", required=False, default="")
@click.pass_obj
@_handle_errors
def find(manager: SkillManager, query: str) -> None:
    """Search the skills directory by keyword."""
    results = manager.find(query)
    if not results:
        click.echo("  No skills found.")
        return

    for r in results:
        installs = f" ({r.installs} installs)" if r.installs is not None else ""
        click.echo(f"  {r.name} · {r.source}{installs}")
        if r.description:
            click.echo(f"    {r.description}")
        click.echo(f"    {r.install_command}")


# ── CHECK / UPDATE ───────────────────────────────────────────────────────


@main.command()
@click.pass_obj
@_handle_errors
def check(manager: SkillManager) -> None:
    """Report installed sources that changed upstream."""
    statuses = manager.check()
    if not statuses:
        click.echo("  No sources installed.")
        return

    for s in statuses:
        if s.status == STATUS_SKIPPED:
            click.echo(f"  - {s.key}: local source, skipped")
        elif s.status == STATUS_ERROR:
            click.echo(f"  ✗ {s.key}: {s.error}")
        elif s.status == STATUS_UP_TO_DATE:
            click.echo(f"  ✓ {s.key}: up to date")
        else:
            click.echo(f"  ↑ {s.key}: update available")

    stale = sum(1 for s in statuses if s.is_stale)
    if stale:
        click.echo(f"\n{stale} source(s) can be updated. Run `skil update`.")


@main.command()
@click.pass_obj
@_handle_errors
def update(manager: SkillManager) -> None:
    """Reinstall every source that changed upstream."""
    result = manager.update()

    click.echo(
        f"Updated {len(result.updated)}, up to date {len(result.up_to_date)}, "
        f"failed {len(result.failed)}"
    )
    for key, error in result.failed.items():
        click.echo(f"  ✗ {key}: {error}", err=True)

    if not result.success:
        sys.exit(EXIT_PARTIAL if result.updated else EXIT_FAILED)


# ── INIT ─────────────────────────────────────────────────────────────────


@main.command()
@click.argument("name", required=False)
@click.pass_obj
@_handle_errors
def init(manager: SkillManager, name: str | None) -> None:
    """Create a SKILL.md template (in NAME/ or the current directory)."""
    path = manager.init_skill(name)
    click.echo(f"Created {path}")


# ── ALIASES ──────────────────────────────────────────────────────────────

for _alias in ("a", "install", "i"):
    main.add_command(add, name=_alias)
for _alias in ("rm", "r"):
    main.add_command(remove, name=_alias)
main.add_command(list_, name="ls")
for _alias in ("search", "f", "s"):
    main.add_command(find, name=_alias)
main.add_command(update, name="upgrade")


if __name__ == "__main__":
    main()
