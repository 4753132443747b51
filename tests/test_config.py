"""Tests for configuration resolution."""

import json
from pathlib import Path

import pytest

from workbench.config import (
    DEFAULT_AFTER_CREATE,
    ConfigError,
    Settings,
    WorkbenchConfig,
    load_config,
    resolve_worktrees_dir,
    validate_config,
)
from workbench.core.hooks import hooks_for


def write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


class TestDefaults:
    def test_no_files_gives_defaults(self, tmp_path):
        loaded = load_config(tmp_path)
        assert loaded.source == "default"
        assert loaded.config_path is None
        config = loaded.config
        assert config.worktrees_dir == "./worktrees"
        assert config.default_branch_type == "feat"
        assert config.max_branch_slug_length == 40
        assert config.terminal == "wezterm"
        assert config.auto_open_terminal is True
        assert config.auto_run_hooks is True
        assert config.default_base_branch == "main"
        assert config.use_ai_branch_naming is True
        assert config.hooks.after_create == DEFAULT_AFTER_CREATE
        assert config.hooks.before_destroy == []


class TestJsonConfig:
    def test_loads_workbench_dir_config(self, tmp_path):
        write_json(tmp_path / ".workbench" / "config.json", {"terminal": "tmux", "maxBranchSlugLength": 20})
        loaded = load_config(tmp_path)
        assert loaded.source == "json"
        assert loaded.config.terminal == "tmux"
        assert loaded.config.max_branch_slug_length == 20
        assert loaded.config.default_base_branch == "main"

    def test_root_json_file(self, tmp_path):
        write_json(tmp_path / "workbench.json", {"defaultBaseBranch": "develop"})
        assert load_config(tmp_path).config.default_base_branch == "develop"

    def test_dir_config_wins_over_root_file(self, tmp_path):
        write_json(tmp_path / ".workbench" / "config.json", {"terminal": "kitty"})
        write_json(tmp_path / "workbench.json", {"terminal": "tmux"})
        assert load_config(tmp_path).config.terminal == "kitty"

    def test_snake_case_keys_accepted(self, tmp_path):
        write_json(tmp_path / "workbench.json", {"auto_run_hooks": False})
        assert load_config(tmp_path).config.auto_run_hooks is False

    def test_malformed_json_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "workbench.json").write_text("{not json")
        loaded = load_config(tmp_path)
        assert loaded.source == "default"

    def test_undecodable_json_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / ".workbench" / "config.json"
        path.parent.mkdir()
        path.write_bytes(b'{"terminal": "\xff"}')
        assert load_config(tmp_path).source == "default"

    def test_invalid_value_falls_back_to_defaults(self, tmp_path):
        write_json(tmp_path / "workbench.json", {"terminal": "xterm"})
        loaded = load_config(tmp_path)
        assert loaded.source == "default"
        assert loaded.config.terminal == "wezterm"

    def test_unknown_keys_ignored(self, tmp_path):
        write_json(tmp_path / "workbench.json", {"somethingElse": 1, "terminal": "none"})
        assert load_config(tmp_path).config.terminal == "none"

    def test_nested_hooks(self, tmp_path):
        write_json(
            tmp_path / "workbench.json",
            {"hooks": {"afterCreate": ["make setup"], "beforeDestroy": ["make clean"]}},
        )
        hooks = load_config(tmp_path).config.hooks
        assert hooks.after_create == ["make setup"]
        assert hooks.before_destroy == ["make clean"]


class TestPyprojectConfig:
    def test_pyproject_takes_precedence(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[tool.workbench]\nterminal = "kitty"\n')
        write_json(tmp_path / "workbench.json", {"terminal": "tmux"})
        loaded = load_config(tmp_path)
        assert loaded.source == "pyproject.toml"
        assert loaded.config.terminal == "kitty"

    def test_pyproject_without_section_is_skipped(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n')
        write_json(tmp_path / "workbench.json", {"terminal": "tmux"})
        assert load_config(tmp_path).source == "json"

    def test_broken_pyproject_is_skipped(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("[tool.workbench\n")
        assert load_config(tmp_path).source == "default"

    def test_undecodable_pyproject_falls_through_to_json(self, tmp_path):
        (tmp_path / "pyproject.toml").write_bytes(b'[tool.workbench]\nterminal = "\xff"\n')
        write_json(tmp_path / "workbench.json", {"terminal": "tmux"})
        loaded = load_config(tmp_path)
        assert loaded.source == "json"
        assert loaded.config.terminal == "tmux"

    def test_non_table_tool_key_is_skipped(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('tool = "nope"\n')
        write_json(tmp_path / "workbench.json", {"terminal": "kitty"})
        assert load_config(tmp_path).config.terminal == "kitty"


class TestValidateConfig:
    def test_none_is_defaults(self):
        assert validate_config(None) == WorkbenchConfig()

    def test_non_object_rejected(self):
        with pytest.raises(ConfigError):
            validate_config(["terminal"])

    def test_non_positive_slug_length_rejected(self):
        with pytest.raises(ConfigError):
            validate_config({"maxBranchSlugLength": 0})


class TestHelpers:
    def test_relative_worktrees_dir(self, tmp_path):
        config = WorkbenchConfig(worktrees_dir="../trees")
        assert resolve_worktrees_dir(tmp_path, config) == (tmp_path / ".." / "trees").resolve()

    def test_absolute_worktrees_dir(self, tmp_path):
        config = WorkbenchConfig(worktrees_dir=str(tmp_path / "abs"))
        assert resolve_worktrees_dir("/elsewhere", config) == tmp_path / "abs"

    def test_empty_hooks_fall_back_to_defaults(self):
        config = WorkbenchConfig.model_validate({"hooks": {"afterCreate": [], "beforeDestroy": []}})
        assert hooks_for(config).after_create == DEFAULT_AFTER_CREATE

    def test_configured_hooks_kept(self):
        config = WorkbenchConfig.model_validate({"hooks": {"afterCreate": [], "beforeDestroy": ["x"]}})
        hooks = hooks_for(config)
        assert hooks.after_create == []
        assert hooks.before_destroy == ["x"]


class TestSettings:
    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("WB_REPO_PATH", str(tmp_path))
        monkeypatch.setenv("WB_LOG_LEVEL", "debug")
        monkeypatch.setenv("WB_GIT_TIMEOUT", "5")
        settings = Settings.from_env()
        assert settings.repo_path == tmp_path
        assert settings.log_level == "DEBUG"
        assert settings.git_timeout == 5.0
