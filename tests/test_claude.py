"""Tests for LLM branch name suggestions."""

import json
from unittest.mock import patch

from workbench.db.models import TaskDescriptor
from workbench.integrations.claude import (
    ClaudeBranchSuggester,
    build_naming_prompt,
    parse_branch_suggestion,
)
from workbench.integrations.process import ProcessError, ProcessResult

TASK = TaskDescriptor(task_id="T-5", title="Add rate limiting", description="Per-user limits", priority="high")


class TestParsing:
    def test_json_object(self):
        branch = parse_branch_suggestion('Sure! {"type": "feat", "slug": "rate-limiting"}')
        assert str(branch) == "feat/rate-limiting"

    def test_slug_is_normalised(self):
        branch = parse_branch_suggestion('{"type": "fix", "slug": "Rate Limiting!"}')
        assert str(branch) == "fix/rate-limiting"

    def test_unknown_type_uses_default(self):
        branch = parse_branch_suggestion('{"type": "feature", "slug": "x"}', default_type="chore")
        assert str(branch) == "chore/x"

    def test_branch_line(self):
        assert str(parse_branch_suggestion("Use refactor/split-config please")) == "refactor/split-config"

    def test_truncates(self):
        branch = parse_branch_suggestion('{"type": "feat", "slug": "abcdefghij"}', max_slug_length=4)
        assert branch.slug == "abcd"

    def test_nothing_usable(self):
        assert parse_branch_suggestion("I cannot help with that") is None


class TestPrompt:
    def test_mentions_task(self):
        prompt = build_naming_prompt(TASK)
        assert "T-5" in prompt
        assert "Add rate limiting" in prompt
        assert "Per-user limits" in prompt
        assert "feat, fix, refactor, docs, chore, test" in prompt


class TestSuggester:
    @patch("workbench.integrations.claude.exec_command")
    def test_parses_json_output(self, mock_exec):
        result = json.dumps({"type": "result", "result": '{"type": "feat", "slug": "rate-limits"}'})
        mock_exec.return_value = ProcessResult(args=[], stdout=result, stderr="", exit_code=0)

        branch = ClaudeBranchSuggester(model="haiku").suggest(TASK)

        assert str(branch) == "feat/rate-limits"
        cmd = mock_exec.call_args.args[0]
        assert cmd[:2] == ["claude", "-p"]
        assert cmd[-2:] == ["--model", "haiku"]
        assert "--output-format" in cmd

    @patch("workbench.integrations.claude.exec_command")
    def test_plain_text_output(self, mock_exec):
        mock_exec.return_value = ProcessResult(args=[], stdout="docs/readme-update\n", stderr="", exit_code=0)
        assert str(ClaudeBranchSuggester().suggest(TASK)) == "docs/readme-update"

    @patch("workbench.integrations.claude.exec_command")
    def test_failure_returns_none(self, mock_exec):
        mock_exec.side_effect = ProcessError(["claude"], 1, "not logged in")
        assert ClaudeBranchSuggester().suggest(TASK) is None

    @patch("workbench.integrations.claude.shutil.which", return_value=None)
    def test_availability(self, _which):
        assert not ClaudeBranchSuggester(executable="no-such-claude").is_available()
