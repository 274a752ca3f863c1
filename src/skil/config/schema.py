"""
Pydantic models for skil configuration and state files.

Two families:
- tool settings (Settings, LoggingConfig, SearchConfig) loaded from YAML,
  env vars and CLI flags;
- persisted install state: the source config (config.toml / .skil.toml)
  and the skill lock file. Field aliases match the on-disk key names.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LOCK_VERSION = 3


# ── Tool settings ────────────────────────────────────────────────────────


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "human", "warn", "error"] = "human"
    file: Path | None = None
    verbose: int = 0

    model_config = {"extra": "forbid"}


class SearchConfig(BaseModel):
    """Remote skill search (the `find` command)."""

    api_base: str = "https://skills.sh"
    limit: int = Field(default=10, ge=1, le=100)
    timeout: float = Field(default=30.0, gt=0)

    model_config = {"extra": "forbid"}


class Settings(BaseModel):
    """Complete tool settings."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    model_config = {"extra": "forbid"}


# ── Source config (config.toml) ──────────────────────────────────────────


class SkilSource(BaseModel):
    """One installed source and the skill names taken from it.

    `skills` behaves as a set: it is de-duplicated and kept sorted.
    """

    source_type: str = Field(alias="source-type")
    branch: str | None = None
    subpath: str | None = None
    revision: str | None = None
    skills: list[str] = Field(default_factory=list)

    model_config = {"extra": "forbid", "populate_by_name": True}

    @field_validator("skills")
    @classmethod
    def _as_sorted_set(cls, v: list[str]) -> list[str]:
        return sorted(set(v))

    def merge_skills(self, names: list[str]) -> None:
        self.skills = sorted(set(self.skills) | set(names))


class SkilConfig(BaseModel):
    """Installed sources keyed by source id."""

    sources: dict[str, SkilSource] = Field(default_factory=dict, alias="source")

    model_config = {"extra": "forbid", "populate_by_name": True}

    def to_toml_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Lock file ────────────────────────────────────────────────────────────


class SkillLockEntry(BaseModel):
    """Provenance of one installed skill."""

    source: str
    source_type: str = Field(alias="sourceType")
    source_url: str = Field(alias="sourceUrl")
    skill_path: str | None = Field(default=None, alias="skillPath")
    source_branch: str | None = Field(default=None, alias="sourceBranch")
    skill_folder_hash: str = Field(default="", alias="skillFolderHash")
    installed_at: str = Field(alias="installedAt")
    updated_at: str = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}


class SkillLockFile(BaseModel):
    """Lock file: schema version plus entries keyed by skill name."""

    version: int = LOCK_VERSION
    skills: dict[str, SkillLockEntry] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
