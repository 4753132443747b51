"""Git worktree lifecycle management keyed by branch."""

import logging
from dataclasses import dataclass
from pathlib import Path

from workbench.core.naming import branch_from_dirname, branch_to_dirname
from workbench.integrations.git import (
    GitError,
    WorktreeInfo,
    branch_exists,
    delete_branch,
    ref_exists,
    worktree_add,
    worktree_list,
    worktree_prune,
    worktree_remove,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKTREES_DIR = "worktrees"


class WorktreeCreationError(Exception):
    """Raised when a worktree cannot be created for a branch."""


@dataclass
class OrphanDir:
    path: str
    inferred_branch: str


def worktree_path_for(branch: str, worktrees_root: str | Path) -> Path:
    return Path(worktrees_root) / branch_to_dirname(branch)


def _resolve_root(base_path: str | Path, worktrees_dir: str | Path) -> Path:
    root = Path(worktrees_dir)
    if not root.is_absolute():
        root = Path(base_path) / root
    return root.resolve()


def create_worktree(
    branch: str,
    base_branch: str,
    base_path: str | Path,
    worktrees_dir: str | Path = DEFAULT_WORKTREES_DIR,
) -> Path:
    """Create a worktree for branch under worktrees_dir. Returns its path.

    A new branch is forked from base_branch. If the branch already exists
    (its worktree was deleted out from under us) it is checked out as is.
    """
    wt_path = worktree_path_for(branch, _resolve_root(base_path, worktrees_dir))
    if wt_path.exists():
        raise WorktreeCreationError(f"Worktree path already exists: {wt_path}")

    create_branch = not branch_exists(base_path, branch)
    if create_branch and not ref_exists(base_path, base_branch):
        raise WorktreeCreationError(f"Base branch not found: {base_branch}")

    if not create_branch:
        # A stale registration for the branch would make `worktree add` refuse it.
        worktree_prune(base_path)
        logger.info("Reusing existing branch %s for a new worktree", branch)

    wt_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        worktree_add(base_path, wt_path, branch, base_branch, create_branch=create_branch)
    except GitError as e:
        raise WorktreeCreationError(f"Could not create worktree for {branch}: {e.stderr.strip() or e}") from e

    logger.info("Created worktree %s for branch %s", wt_path, branch)
    return wt_path


def list_worktrees(base_path: str | Path) -> list[WorktreeInfo]:
    return worktree_list(base_path)


def worktree_exists(branch: str, base_path: str | Path) -> bool:
    """Whether git lists a worktree with branch checked out."""
    return any(wt.branch == branch and not wt.is_prunable for wt in worktree_list(base_path))


def find_worktree_at(path: str | Path, base_path: str | Path) -> WorktreeInfo | None:
    """The live worktree registered at path, whatever it has checked out."""
    target = Path(path).resolve()
    for wt in worktree_list(base_path):
        if not wt.is_prunable and Path(wt.path).resolve() == target:
            return wt
    return None


def remove_worktree(path: str | Path, force: bool = False, base_path: str | Path = ".") -> None:
    """Remove a worktree. Session records are left untouched."""
    worktree_remove(base_path, path, force=force)
    logger.info("Removed worktree %s", path)


def prune_worktrees(base_path: str | Path) -> None:
    worktree_prune(base_path)


def remove_branch(base_path: str | Path, branch: str, force: bool = False) -> bool:
    """Delete a local branch if it exists."""
    if not branch_exists(base_path, branch):
        return False
    delete_branch(base_path, branch, force=force)
    return True


def find_orphan_dirs(base_path: str | Path, worktrees_root: str | Path) -> list[OrphanDir]:
    """Directories under the worktree root that git does not know about."""
    root = Path(worktrees_root)
    if not root.is_dir():
        return []
    known = {str(Path(wt.path).resolve()) for wt in worktree_list(base_path)}
    orphans = []
    for entry in sorted(root.iterdir()):
        if entry.is_dir() and str(entry.resolve()) not in known:
            orphans.append(OrphanDir(path=str(entry), inferred_branch=branch_from_dirname(entry.name)))
    return orphans
