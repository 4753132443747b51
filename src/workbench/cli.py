"""CLI entry point for the task workbench."""

import json
import logging
import sys
from pathlib import Path

import click

from workbench.commands import COMMANDS, CommandContext, dispatch
from workbench.config import get_settings, load_config, resolve_worktrees_dir
from workbench.core import sessions as sessions_mod
from workbench.core import worktrees as worktrees_mod
from workbench.integrations.claude import build_suggester
from workbench.integrations.git import GitError, NotARepositoryError, get_repo_root


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _repo_root() -> Path:
    settings = get_settings()
    try:
        return get_repo_root(settings.repo_path)
    except NotARepositoryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _echo_result(payload: dict, json_output: bool):
    if json_output:
        click.echo(json.dumps(payload, indent=2))
    else:
        if payload.get("status") == "failed":
            click.echo(f"Error: {payload.get('message')}", err=True)
        else:
            click.echo(payload.get("message") or payload.get("status"))
        for warning in payload.get("warnings") or []:
            click.echo(f"  Warning: {warning}", err=True)
    if payload.get("status") == "failed":
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
def main(verbose):
    """wb - Task Workbench CLI"""
    settings = get_settings()
    configure_logging("INFO" if verbose else settings.log_level)


# ── Workspace Commands ────────────────────────────────────────────────────────


@main.command("start")
@click.argument("task_id")
@click.argument("title")
@click.option("--description", "-d", default=None, help="Task description")
@click.option("--priority", "-p", default=None, type=click.Choice(["low", "medium", "high", "critical"]))
@click.option("--type", "task_type", default=None, help="Task type: feat, fix, refactor, docs, chore, test")
@click.option("--branch-type", default=None, help="Branch type prefix override")
@click.option("--branch-slug", default=None, help="Branch slug override")
@click.option("--base-branch", default=None, help="Branch to fork the worktree from")
@click.option("--session-id", default=None, help="Interactive session id to record")
@click.option("--terminal/--no-terminal", default=None, help="Open a terminal in the worktree")
@click.option("--hooks/--no-hooks", default=None, help="Run afterCreate hooks")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def start(task_id, title, description, priority, task_type, branch_type, branch_slug, base_branch,
          session_id, terminal, hooks, json_output):
    """Create the worktree for a task, or resume it if it already exists."""
    settings = get_settings()
    payload = {
        "task_id": task_id,
        "title": title,
        "description": description,
        "priority": priority,
        "type": task_type,
        "branch_type": branch_type,
        "branch_slug": branch_slug,
        "base_branch": base_branch,
    }
    ctx = CommandContext(
        base_path=settings.repo_path,
        suggester=build_suggester(settings),
        opencode_session_id=session_id,
        open_terminal=terminal,
        run_hooks=hooks,
    )
    result = dispatch("start-task", payload, ctx)
    if not json_output and result["status"] != "failed":
        click.echo(result["message"])
        click.echo(f"  Branch: {result['branch']}")
        click.echo(f"  Worktree: {result['worktreePath']}")
        for warning in result["warnings"]:
            click.echo(f"  Warning: {warning}", err=True)
        return
    _echo_result(result, json_output)


@main.command("destroy")
@click.argument("task_id")
@click.option("--force", is_flag=True, help="Remove even with uncommitted changes")
@click.option("--keep-session", is_flag=True, help="Keep the session record")
@click.option("--delete-branch", is_flag=True, help="Also delete the task branch")
@click.option("--hooks/--no-hooks", default=None, help="Run beforeDestroy hooks")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def destroy(task_id, force, keep_session, delete_branch, hooks, json_output):
    """Tear down a task's workspace."""
    settings = get_settings()
    payload = {
        "task_id": task_id,
        "force": force,
        "keep_session": keep_session,
        "delete_branch": delete_branch,
    }
    result = dispatch("destroy-workspace", payload, CommandContext(base_path=settings.repo_path, run_hooks=hooks))
    _echo_result(result, json_output)


# ── Session Commands ──────────────────────────────────────────────────────────


@main.group("session")
def session_group():
    """Inspect and manage task sessions."""
    pass


@session_group.command("list")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def session_list(json_output):
    """List recorded sessions."""
    settings = get_settings()
    result = dispatch("list-sessions", {}, CommandContext(base_path=settings.repo_path))
    if json_output or result["status"] == "failed":
        _echo_result(result, json_output)
        return

    if not result["sessions"]:
        click.echo("No sessions found.")
        return
    for s in result["sessions"]:
        alive = "●" if Path(s["worktreePath"]).is_dir() else "✗"
        click.echo(f"  {alive} {s['taskId']}: {s['taskName']} [{s['branch']}] {s['worktreePath']}")


@session_group.command("show")
@click.argument("task_id")
def session_show(task_id):
    """Show one session."""
    session = sessions_mod.find_session_by_task(_repo_root(), task_id)
    if not session:
        click.echo(f"Session not found: {task_id}", err=True)
        sys.exit(1)

    click.echo(f"Session: {session.task_id}")
    click.echo(f"  Task: {session.task_name}")
    click.echo(f"  Branch: {session.branch}")
    click.echo(f"  Worktree: {session.worktree_path}")
    if session.opencode_session_id:
        click.echo(f"  Session ID: {session.opencode_session_id}")
    click.echo(f"  Created: {session.created_at.isoformat()}")
    click.echo(f"  Updated: {session.updated_at.isoformat()}")


@session_group.command("rm")
@click.argument("task_id")
def session_rm(task_id):
    """Forget a session without touching its worktree."""
    if sessions_mod.remove_session(_repo_root(), task_id):
        click.echo(f"Removed session: {task_id}")
    else:
        click.echo(f"No session for: {task_id}")


# ── Worktree Commands ────────────────────────────────────────────────────────


@main.group("worktree")
def worktree_group():
    """Manage git worktrees."""
    pass


@worktree_group.command("list")
def worktree_list():
    """List all worktrees and their linked tasks."""
    repo = _repo_root()
    by_path = {s.worktree_path: s for s in sessions_mod.list_sessions(repo)}
    for wt in worktrees_mod.list_worktrees(repo):
        session = by_path.get(wt.path)
        task_info = f" -> {session.task_id}: {session.task_name}" if session else ""
        click.echo(f"  {wt.branch or '(detached)'} at {wt.path}{task_info}")

    worktrees_root = resolve_worktrees_dir(repo, load_config(repo).config)
    for orphan in worktrees_mod.find_orphan_dirs(repo, worktrees_root):
        click.echo(f"  ? {orphan.path} (untracked, looks like {orphan.inferred_branch})")


@worktree_group.command("rm")
@click.argument("path")
@click.option("--force", is_flag=True, help="Remove even with uncommitted changes")
def worktree_rm(path, force):
    """Remove a worktree. Its session record is kept."""
    repo = _repo_root()
    try:
        worktrees_mod.remove_worktree(Path(path).resolve(), force=force, base_path=repo)
    except GitError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Removed worktree: {path}")


# ── Config Commands ───────────────────────────────────────────────────────────


@main.group("config")
def config_group():
    """Inspect configuration."""
    pass


@config_group.command("show")
def config_show():
    """Print the resolved configuration and where it came from."""
    loaded = load_config(_repo_root())
    click.echo(f"# source: {loaded.source}" + (f" ({loaded.config_path})" if loaded.config_path else ""))
    click.echo(json.dumps(loaded.config.model_dump(mode="json", by_alias=True), indent=2))


# ── Tool Registry / MCP ───────────────────────────────────────────────────────


@main.command("tools")
def tools_command():
    """List the registered commands and their input fields."""
    for name, command in COMMANDS.items():
        fields = ", ".join(
            f"{field.alias or key}{'' if field.is_required() else '?'}"
            for key, field in command.input_model.model_fields.items()
        )
        click.echo(f"{name}({fields})")
        click.echo(f"    {command.description}")


@main.group("mcp")
def mcp_group():
    """MCP server commands."""
    pass


@mcp_group.command("serve")
def mcp_serve():
    """Start the MCP server (stdio transport)."""
    from workbench.mcp.server import mcp

    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
