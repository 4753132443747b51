"""Git subprocess wrappers for worktree and branch operations."""

from dataclasses import dataclass
from pathlib import Path

from workbench.config import get_settings
from workbench.integrations.process import ProcessError, ProcessResult, exec_command


class GitError(ProcessError):
    """Raised when a git command fails."""


class NotARepositoryError(Exception):
    """Raised when a path is not inside a git work tree."""


@dataclass
class WorktreeInfo:
    path: str
    branch: str
    head: str
    is_bare: bool = False
    is_detached: bool = False
    is_prunable: bool = False


def run_git(
    args: list[str],
    cwd: str | Path | None = None,
    check: bool = True,
    timeout: float | None = None,
) -> ProcessResult:
    """Run a git command. Raises GitError on failure unless check is False."""
    if timeout is None:
        timeout = get_settings().git_timeout
    try:
        return exec_command(["git"] + args, cwd=cwd, check=check, timeout=timeout)
    except ProcessError as e:
        raise GitError(e.args_list, e.exit_code, e.stderr) from e


def git_output(args: list[str], cwd: str | Path | None = None) -> str:
    """Run a git command and return stripped stdout."""
    return run_git(args, cwd=cwd).stdout.strip()


def get_repo_root(path: str | Path) -> Path:
    """Resolve the top-level directory of the work tree containing path."""
    path = Path(path)
    if not path.is_dir():
        raise NotARepositoryError(f"Not a directory: {path}")
    try:
        top = git_output(["rev-parse", "--show-toplevel"], cwd=path)
    except GitError as e:
        raise NotARepositoryError(f"Not inside a git repository: {path}") from e
    if not top:
        raise NotARepositoryError(f"Not inside a git work tree: {path}")
    return Path(top).resolve()


def worktree_add(
    repo_path: str | Path,
    worktree_path: str | Path,
    branch: str,
    base_branch: str = "main",
    create_branch: bool = True,
) -> str:
    """Create a new git worktree."""
    args = ["worktree", "add"]
    if create_branch:
        args += ["-b", branch]
    args += [str(worktree_path)]
    if not create_branch:
        args.append(branch)
    else:
        args.append(base_branch)
    return git_output(args, cwd=repo_path)


def parse_worktree_porcelain(output: str) -> list[WorktreeInfo]:
    """Parse `git worktree list --porcelain` output."""
    worktrees = []
    current: dict = {}

    def flush():
        if current:
            worktrees.append(
                WorktreeInfo(
                    path=current.get("worktree", ""),
                    branch=current.get("branch", "").replace("refs/heads/", ""),
                    head=current.get("HEAD", ""),
                    is_bare=current.get("bare", False),
                    is_detached=current.get("detached", False),
                    is_prunable=current.get("prunable", False),
                )
            )
            current.clear()

    for line in output.split("\n"):
        if not line:
            flush()
            continue

        if line.startswith("worktree "):
            current["worktree"] = line[len("worktree "):]
        elif line.startswith("HEAD "):
            current["HEAD"] = line[len("HEAD "):]
        elif line.startswith("branch "):
            current["branch"] = line[len("branch "):]
        elif line == "bare":
            current["bare"] = True
        elif line == "detached":
            current["detached"] = True
        elif line.startswith("prunable"):
            current["prunable"] = True

    flush()
    return worktrees


def worktree_list(repo_path: str | Path) -> list[WorktreeInfo]:
    """List all worktrees in porcelain format."""
    output = run_git(["worktree", "list", "--porcelain"], cwd=repo_path).stdout
    return parse_worktree_porcelain(output)


def worktree_remove(repo_path: str | Path, worktree_path: str | Path, force: bool = False) -> str:
    """Remove a git worktree."""
    args = ["worktree", "remove", str(worktree_path)]
    if force:
        args.append("--force")
    return git_output(args, cwd=repo_path)


def worktree_prune(repo_path: str | Path) -> str:
    """Drop administrative entries for worktrees whose directories are gone."""
    return git_output(["worktree", "prune"], cwd=repo_path)


def branch_exists(repo_path: str | Path, branch: str) -> bool:
    """Check if a local branch exists."""
    result = run_git(["rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"], cwd=repo_path, check=False)
    return result.ok


def ref_exists(repo_path: str | Path, ref: str) -> bool:
    """Check if any ref (branch, remote branch, tag or commit) resolves."""
    result = run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd=repo_path, check=False)
    return result.ok


def delete_branch(repo_path: str | Path, branch: str, force: bool = False) -> str:
    """Delete a branch."""
    flag = "-D" if force else "-d"
    return git_output(["branch", flag, branch], cwd=repo_path)
