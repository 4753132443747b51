"""MCP server exposing the workbench commands as tools."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import Context, FastMCP

from workbench.commands import CommandContext, dispatch
from workbench.config import Settings, get_settings
from workbench.integrations.claude import ClaudeBranchSuggester, build_suggester


@dataclass
class AppContext:
    settings: Settings
    suggester: ClaudeBranchSuggester | None = None


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Resolve settings once at startup."""
    settings = get_settings()
    yield AppContext(settings=settings, suggester=build_suggester(settings))


mcp = FastMCP("workbench", lifespan=app_lifespan)


def _ctx(ctx: Context) -> AppContext:
    """Extract AppContext from MCP Context."""
    return ctx.request_context.lifespan_context


def _command_context(ctx: Context, session_id: str | None = None) -> CommandContext:
    app = _ctx(ctx)
    return CommandContext(
        base_path=app.settings.repo_path,
        suggester=app.suggester,
        opencode_session_id=session_id,
    )


@mcp.tool()
def start_task(
    ctx: Context,
    task_id: str,
    title: str,
    description: str | None = None,
    priority: str | None = None,
    type: str | None = None,
    branch_type: str | None = None,
    branch_slug: str | None = None,
    base_branch: str | None = None,
    session_id: str | None = None,
) -> dict:
    """Create an isolated git worktree for a task, or resume the existing one.

    Use this when starting work on a task to keep it separate from other work.
    priority is one of low, medium, high, critical; type and branch_type are one
    of feat, fix, refactor, docs, chore, test.
    """
    payload = {
        "task_id": task_id,
        "title": title,
        "description": description,
        "priority": priority,
        "type": type,
        "branch_type": branch_type,
        "branch_slug": branch_slug,
        "base_branch": base_branch,
    }
    return dispatch("start-task", payload, _command_context(ctx, session_id))


@mcp.tool()
def destroy_workspace(
    ctx: Context,
    task_id: str,
    force: bool = False,
    keep_session: bool = False,
    delete_branch: bool = False,
) -> dict:
    """Remove a task's worktree (running beforeDestroy hooks first) and forget its session."""
    payload = {
        "task_id": task_id,
        "force": force,
        "keep_session": keep_session,
        "delete_branch": delete_branch,
    }
    return dispatch("destroy-workspace", payload, _command_context(ctx))


@mcp.tool()
def list_sessions(ctx: Context) -> dict:
    """List every task session recorded for the repository."""
    return dispatch("list-sessions", {}, _command_context(ctx))
