"""
Error hierarchy for skil.

Every failure the core can raise derives from SkilError so the CLI can
report it and exit with a non-zero code. None of them are retried.
"""


class SkilError(Exception):
    """Base error for skil operations."""

    pass


class InvalidSourceError(SkilError):
    """The source string could not be parsed (e.g. a one-segment shorthand)."""

    pass


class SourceNotFoundError(SkilError):
    """An explicit local path does not exist."""

    pass


class NoSkillsFoundError(SkilError):
    """Discovery returned no valid skills."""

    pass


class NoMatchSelectedError(SkilError):
    """The requested skill names matched none of the discovered skills."""

    pass


class NoAgentsSelectedError(SkilError):
    """Agent resolution produced an empty set."""

    pass


class InvalidAgentError(SkilError):
    """An unknown agent name was requested explicitly."""

    pass


class GitOperationError(SkilError):
    """A git clone, ls-remote or checkout failed."""

    pass


class FilesystemError(SkilError):
    """I/O failure while copying, linking, reading or writing."""

    pass


class MalformedFrontmatterError(SkilError):
    """The YAML frontmatter block of a SKILL.md could not be parsed."""

    pass


class ConfigParseError(SkilError):
    """config.toml could not be parsed or validated."""

    pass


class LockParseError(SkilError):
    """The lock file could not be parsed or validated."""

    pass


class SearchError(SkilError):
    """The remote skill search failed."""

    pass
