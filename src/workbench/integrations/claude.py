"""Branch name suggestions from the Claude CLI."""

import json
import logging
import re
import shutil

from workbench.config import Settings
from workbench.core.naming import DEFAULT_MAX_SLUG_LENGTH, coerce_branch_name
from workbench.db.models import BRANCH_TYPES, BranchName, TaskDescriptor
from workbench.integrations.process import ProcessError, exec_command

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*?\}", re.DOTALL)
_BRANCH_LINE_RE = re.compile(r"\b(" + "|".join(BRANCH_TYPES) + r")/([a-z0-9][a-z0-9-]*)")


def build_naming_prompt(task: TaskDescriptor, max_slug_length: int = DEFAULT_MAX_SLUG_LENGTH) -> str:
    parts = [
        "Suggest a git branch name for the following task.",
        f"Task ID: {task.task_id}",
        f"Title: {task.title}",
    ]
    if task.description:
        parts.append(f"Description: {task.description}")
    if task.priority:
        parts.append(f"Priority: {task.priority}")
    parts.append(
        "\nReply with a single JSON object and nothing else: "
        '{"type": "<type>", "slug": "<slug>"}\n'
        f"- type is one of: {', '.join(BRANCH_TYPES)}\n"
        f"- slug uses only lowercase letters, digits and hyphens, at most {max_slug_length} characters"
    )
    return "\n".join(parts)


def parse_branch_suggestion(
    text: str,
    default_type: str = "feat",
    max_slug_length: int = DEFAULT_MAX_SLUG_LENGTH,
) -> BranchName | None:
    """Extract a branch name from model output, or None if there isn't one."""
    for match in _JSON_OBJECT_RE.finditer(text):
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and data.get("slug"):
            return coerce_branch_name(
                str(data.get("type") or ""), str(data["slug"]), default_type, max_slug_length
            )

    if match := _BRANCH_LINE_RE.search(text):
        return coerce_branch_name(match.group(1), match.group(2), default_type, max_slug_length)
    return None


class ClaudeBranchSuggester:
    """Asks ``claude -p`` for a branch type and slug.

    Every failure is logged and reported as "no suggestion" so that naming
    can fall back to the deterministic path.
    """

    def __init__(
        self,
        executable: str = "claude",
        model: str | None = "haiku",
        timeout: float = 60.0,
        default_type: str = "feat",
        max_slug_length: int = DEFAULT_MAX_SLUG_LENGTH,
    ):
        self.executable = executable
        self.model = model
        self.timeout = timeout
        self.default_type = default_type
        self.max_slug_length = max_slug_length

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def suggest(self, task: TaskDescriptor) -> BranchName | None:
        cmd = [self.executable, "-p", build_naming_prompt(task, self.max_slug_length), "--output-format", "json"]
        if self.model:
            cmd += ["--model", self.model]

        try:
            result = exec_command(cmd, timeout=self.timeout)
        except ProcessError as e:
            logger.warning("Branch name suggestion failed for %s: %s", task.task_id, e)
            return None

        text = result.stdout
        try:
            payload = json.loads(result.stdout)
            if isinstance(payload, dict):
                text = str(payload.get("result", ""))
        except json.JSONDecodeError:
            pass  # plain-text output

        branch = parse_branch_suggestion(text, self.default_type, self.max_slug_length)
        if branch is None:
            logger.warning("No usable branch name in suggestion for %s", task.task_id)
        else:
            logger.info("Suggested branch %s for task %s", branch, task.task_id)
        return branch


def build_suggester(settings: Settings) -> ClaudeBranchSuggester | None:
    """A suggester for the configured CLI, or None when it isn't installed."""
    suggester = ClaudeBranchSuggester(executable=settings.claude_path, model=settings.naming_model)
    if not suggester.is_available():
        logger.info("%s not found; branch names will be derived from task titles", settings.claude_path)
        return None
    return suggester
