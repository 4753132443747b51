"""Branch name generation for tasks."""

import re
import unicodedata
from typing import Protocol

from workbench.db.models import BRANCH_TYPES, SLUG_RE, BranchName, TaskDescriptor

DEFAULT_MAX_SLUG_LENGTH = 40
FALLBACK_SLUG = "task"


class BranchSuggester(Protocol):
    """Anything that can propose a branch name for a task (e.g. an LLM)."""

    def suggest(self, task: TaskDescriptor) -> BranchName | None: ...


def slugify(text: str, max_length: int = DEFAULT_MAX_SLUG_LENGTH) -> str:
    """Convert text to a branch-safe slug of at most max_length characters."""
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", folded.lower())
    slug = slug.strip("-")[:max_length]
    return slug.rstrip("-")


def coerce_branch_name(
    branch_type: str | None,
    slug: str | None,
    default_type: str = "feat",
    max_slug_length: int = DEFAULT_MAX_SLUG_LENGTH,
) -> BranchName | None:
    """Build a BranchName from untrusted parts.

    A slug already in ``[a-z0-9-]`` is kept verbatim apart from truncation;
    anything else is slugified. Returns None when nothing usable is left.
    """
    if not slug:
        return None
    if branch_type not in BRANCH_TYPES:
        branch_type = default_type
    slug = slug.strip()
    if SLUG_RE.match(slug):
        slug = slug[:max_slug_length].strip("-")
    else:
        slug = slugify(slug, max_slug_length)
    if not slug:
        return None
    return BranchName(type=branch_type, slug=slug)


def generate_branch_name(
    task: TaskDescriptor,
    default_type: str = "feat",
    max_slug_length: int = DEFAULT_MAX_SLUG_LENGTH,
    include_task_id: bool = True,
    override: BranchName | None = None,
) -> BranchName:
    """Derive the branch for a task.

    An override is used verbatim, re-truncated to max_slug_length. Without
    one the name is deterministic: the task's own type or ``default_type``,
    and a slug built from the task id and title so that two tasks with the
    same title never share a branch.
    """
    if override is not None:
        branch = coerce_branch_name(override.type, override.slug, default_type, max_slug_length)
        if branch is not None:
            return branch

    branch_type = task.type or default_type
    source = f"{task.task_id} {task.title}" if include_task_id else task.title
    slug = slugify(source, max_slug_length) or FALLBACK_SLUG[:max_slug_length]
    return BranchName(type=branch_type, slug=slug)


def branch_to_dirname(branch: str) -> str:
    """Directory name for a branch: path separators become dashes."""
    return branch.replace("/", "-")


def branch_from_dirname(name: str) -> str:
    """Best-effort inverse of branch_to_dirname, for diagnostics only."""
    prefix, sep, rest = name.partition("-")
    if sep and rest and prefix in BRANCH_TYPES:
        return f"{prefix}/{rest}"
    return name
