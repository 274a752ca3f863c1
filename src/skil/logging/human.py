"""
Human Log — Formatter and helper for the progress lines a user reads.

Produces short, readable output on stderr, one line per step:

    Source: vercel-labs/agent-skills (github)
    Cloning https://github.com/vercel-labs/agent-skills.git...
    Found 2 skills: web-design, pdf
      ✓ web-design → Codex, Claude Code
      ✓ pdf → Codex, Claude Code

Final summaries (tables, counts) are printed by the CLI on stdout.
"""

import logging
import sys

from .levels import HUMAN


class HumanFormatter:
    """Turns structured skil events into readable lines.

    Each event type has its own format; events without one are not shown.
    """

    def format_event(self, event: str, **kw) -> str | None:
        """Format one event.

        Args:
            event: Event name (e.g. "source.resolved", "skill.installed")
            **kw: Event parameters

        Returns:
            The line to print, or None if the event has no human format
        """
        match event:

            # ── SOURCES ─────────────────────────────────────────────────
            case "source.resolved":
                source = kw.get("source", "?")
                source_type = kw.get("source_type", "?")
                return f"Source: {source} ({source_type})"

            case "repo.cloning":
                url = kw.get("url", "?")
                branch = kw.get("branch")
                suffix = f" (branch {branch})" if branch else ""
                return f"Cloning {url}{suffix}..."

            # ── DISCOVERY ────────────────────────────────────────────────
            case "skills.found":
                names = kw.get("names") or []
                noun = "skill" if len(names) == 1 else "skills"
                return f"Found {len(names)} {noun}: {', '.join(names)}"

            # ── INSTALL ──────────────────────────────────────────────────
            case "skill.installed_for":
                skill = kw.get("skill", "?")
                agents = kw.get("agents") or []
                copied = " (copy)" if kw.get("copy") else ""
                return f"  ✓ {skill} → {', '.join(agents)}{copied}"

            case "skill.removed_from":
                skill = kw.get("skill", "?")
                count = kw.get("count", 0)
                return f"  ✓ removed {skill} ({count} paths)"

            # ── STATE ────────────────────────────────────────────────────
            case "lock.reset":
                old = kw.get("old_version", "?")
                current = kw.get("current_version", "?")
                return f"⚠  Lock file version {old} is older than {current}, resetting lock file."

            # ── CHECK / UPDATE ───────────────────────────────────────────
            case "update.checking":
                source = kw.get("source", "?")
                return f"Checking {source}..."

            case "update.source_updated":
                source = kw.get("source", "?")
                return f"  ✓ {source} updated"

            case "update.source_failed":
                source = kw.get("source", "?")
                error = kw.get("error", "unknown error")
                return f"  ✗ {source}: {error}"

            case _:
                return None


class HumanLogHandler(logging.Handler):
    """Logging handler that only formats HUMAN-level records.

    Records must come through structlog's ProcessorFormatter.wrap_for_formatter,
    which leaves the event dict in record.msg. Writes to stderr so stdout
    stays clean for command output.
    """

    def __init__(self, stream=None) -> None:
        super().__init__(level=HUMAN)
        self.stream = stream or sys.stderr
        self.formatter_inst = HumanFormatter()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if record.levelno != HUMAN:
                return

            if isinstance(record.msg, dict):
                kw = {
                    k: v for k, v in record.msg.items()
                    if k not in ("event", "level", "logger", "timestamp")
                }
                event = record.msg.get("event", "")
            else:
                kw = {}
                event = record.getMessage()

            formatted = self.formatter_inst.format_event(event, **kw)
            if formatted is not None:
                self.stream.write(formatted + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


class HumanLog:
    """Typed helper for emitting HUMAN-level events.

    Instead of calling log.log(HUMAN, "event", ...) directly, use the
    methods with semantic names.

    Usage:
        hlog = HumanLog(structlog.get_logger())
        hlog.source_resolved("owner/repo", "github")
        hlog.installed("web-design", ["Codex"], copy=False)
    """

    def __init__(self, logger) -> None:
        self._log = logger

    def source_resolved(self, source: str, source_type: str) -> None:
        self._log.log(HUMAN, "source.resolved", source=source, source_type=source_type)

    def cloning(self, url: str, branch: str | None = None) -> None:
        self._log.log(HUMAN, "repo.cloning", url=url, branch=branch)

    def found(self, names: list[str]) -> None:
        self._log.log(HUMAN, "skills.found", names=names)

    def installed(self, skill: str, agents: list[str], copy: bool) -> None:
        self._log.log(HUMAN, "skill.installed_for", skill=skill, agents=agents, copy=copy)

    def removed(self, skill: str, count: int) -> None:
        self._log.log(HUMAN, "skill.removed_from", skill=skill, count=count)

    def lock_reset(self, old_version: int, current_version: int) -> None:
        self._log.log(
            HUMAN, "lock.reset",
            old_version=old_version,
            current_version=current_version,
        )

    def checking(self, source: str) -> None:
        self._log.log(HUMAN, "update.checking", source=source)

    def source_updated(self, source: str) -> None:
        self._log.log(HUMAN, "update.source_updated", source=source)

    def update_failed(self, source: str, error: str) -> None:
        self._log.log(HUMAN, "update.source_failed", source=source, error=error)
