"""Configuration loading.

Two layers live here. ``Settings`` holds process-level options read from
environment variables. ``WorkbenchConfig`` holds per-repository options and is
resolved from, in order of precedence:

1. ``[tool.workbench]`` in ``pyproject.toml``
2. ``.workbench/config.json``, then ``workbench.json``
3. built-in defaults

A source that fails to parse or validate is skipped; loading never raises.
"""

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, ValidationError
from pydantic.alias_generators import to_camel

from workbench.db.models import BranchType

logger = logging.getLogger(__name__)

PYPROJECT_FILE = "pyproject.toml"
PYPROJECT_SECTION = "workbench"
CONFIG_FILES = (".workbench/config.json", "workbench.json")

TerminalType = Literal["wezterm", "tmux", "kitty", "none"]
ConfigSource = Literal["pyproject.toml", "json", "default"]


class ConfigError(Exception):
    """Raised when a configuration source cannot be read or validated."""


@dataclass
class Settings:
    repo_path: Path = field(default_factory=lambda: Path.cwd())
    log_level: str = "WARNING"
    git_timeout: float = 120.0
    claude_path: str = "claude"
    naming_model: str = "haiku"

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls()

        if repo := os.environ.get("WB_REPO_PATH"):
            settings.repo_path = Path(repo)

        if level := os.environ.get("WB_LOG_LEVEL"):
            settings.log_level = level.strip().upper()

        if timeout := os.environ.get("WB_GIT_TIMEOUT"):
            settings.git_timeout = float(timeout)

        if claude := os.environ.get("WB_CLAUDE_PATH"):
            settings.claude_path = claude

        if model := os.environ.get("WB_NAMING_MODEL"):
            settings.naming_model = model

        return settings


def get_settings() -> Settings:
    return Settings.from_env()


DEFAULT_AFTER_CREATE = ["[ -f package.json ] && pnpm install || true"]


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class HooksConfig(_ConfigModel):
    after_create: list[str] = Field(default_factory=lambda: list(DEFAULT_AFTER_CREATE))
    before_destroy: list[str] = Field(default_factory=list)


class WorkbenchConfig(_ConfigModel):
    worktrees_dir: str = "./worktrees"
    default_branch_type: BranchType = "feat"
    max_branch_slug_length: PositiveInt = 40
    hooks: HooksConfig = Field(default_factory=HooksConfig)
    terminal: TerminalType = "wezterm"
    auto_open_terminal: bool = True
    auto_run_hooks: bool = True
    default_base_branch: str = "main"
    use_ai_branch_naming: bool = True
    hook_timeout: PositiveFloat = 300.0
    session_command: str | None = None


@dataclass
class LoadedConfig:
    config: WorkbenchConfig
    source: ConfigSource
    config_path: Path | None = None


def validate_config(data: object) -> WorkbenchConfig:
    """Validate raw config data, filling in defaults. Raises ConfigError."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be an object, got {type(data).__name__}")
    try:
        return WorkbenchConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def find_config_file(base_path: str | Path) -> Path | None:
    """Return the first JSON config file present under base_path."""
    for name in CONFIG_FILES:
        candidate = Path(base_path) / name
        if candidate.is_file():
            return candidate
    return None


def load_config_from_file(path: str | Path) -> dict:
    """Read a JSON config file. Raises ConfigError."""
    try:
        with Path(path).open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:  # includes JSONDecodeError and UnicodeDecodeError
        raise ConfigError(f"Cannot read {path}: {e}") from e


def load_config_from_pyproject(base_path: str | Path) -> dict | None:
    """Return the ``[tool.workbench]`` table, or None when absent."""
    path = Path(base_path) / PYPROJECT_FILE
    if not path.is_file():
        return None
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, ValueError) as e:  # includes TOMLDecodeError and UnicodeDecodeError
        raise ConfigError(f"Cannot read {path}: {e}") from e
    tool = data.get("tool", {})
    if not isinstance(tool, dict):
        raise ConfigError(f"`tool` in {path} must be a table")
    section = tool.get(PYPROJECT_SECTION)
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ConfigError(f"[tool.{PYPROJECT_SECTION}] in {path} must be a table")
    return section


def load_config(base_path: str | Path) -> LoadedConfig:
    """Resolve configuration for the repository at base_path."""
    base = Path(base_path)

    try:
        section = load_config_from_pyproject(base)
        if section is not None:
            return LoadedConfig(validate_config(section), "pyproject.toml", base / PYPROJECT_FILE)
    except ConfigError as e:
        logger.debug("Ignoring pyproject configuration: %s", e)

    json_path = find_config_file(base)
    if json_path:
        try:
            return LoadedConfig(validate_config(load_config_from_file(json_path)), "json", json_path)
        except ConfigError as e:
            logger.debug("Ignoring %s: %s", json_path, e)

    return LoadedConfig(WorkbenchConfig(), "default")


def resolve_worktrees_dir(base_path: str | Path, config: WorkbenchConfig) -> Path:
    """Absolute worktree root; relative settings resolve against base_path."""
    worktrees_dir = Path(config.worktrees_dir).expanduser()
    if worktrees_dir.is_absolute():
        return worktrees_dir
    return (Path(base_path) / worktrees_dir).resolve()
