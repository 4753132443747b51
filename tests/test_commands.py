"""Tests for the command registry."""

import pytest

from workbench.commands import COMMANDS, CommandContext, UnknownCommandError, dispatch, get_command
from workbench.config import LoadedConfig, WorkbenchConfig


@pytest.fixture
def ctx(git_repo):
    config = WorkbenchConfig(terminal="none", use_ai_branch_naming=False, auto_run_hooks=False)
    return CommandContext(base_path=git_repo, loaded_config=LoadedConfig(config, "default"))


class TestRegistry:
    def test_names(self):
        assert set(COMMANDS) == {"start-task", "destroy-workspace", "list-sessions"}

    def test_unknown(self):
        with pytest.raises(UnknownCommandError):
            get_command("launch-rockets")


class TestDispatch:
    def test_start_list_destroy(self, ctx):
        started = dispatch("start-task", {"taskId": "T-1", "title": "Dispatch me"}, ctx)
        assert started["status"] == "created"
        assert started["branch"] == "feat/t-1-dispatch-me"
        assert started["configSource"] == "default"

        listed = dispatch("list-sessions", {}, ctx)
        assert listed["status"] == "ok"
        assert [s["taskId"] for s in listed["sessions"]] == ["T-1"]

        destroyed = dispatch("destroy-workspace", {"taskId": "T-1"}, ctx)
        assert destroyed["status"] == "removed"
        assert dispatch("list-sessions", {}, ctx)["sessions"] == []

    def test_snake_case_payload(self, ctx):
        result = dispatch("start-task", {"task_id": "T-2", "title": "Snake"}, ctx)
        assert result["status"] == "created"

    def test_invalid_input(self, ctx):
        result = dispatch("start-task", {"taskId": "T-3", "title": ""}, ctx)
        assert result["status"] == "failed"
        assert result["taskId"] == "T-3"
        assert result["message"].startswith("Invalid input")

    def test_list_outside_repo(self, tmp_path):
        result = dispatch("list-sessions", {}, CommandContext(base_path=tmp_path))
        assert result["status"] == "failed"
