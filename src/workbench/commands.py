"""Registry of externally callable commands.

Each command declares its input and output models; ``dispatch`` validates the
payload, runs the handler and returns the camelCase wire form. The CLI and the
MCP server both go through here.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ValidationError

from workbench.config import LoadedConfig
from workbench.core import sessions as sessions_mod
from workbench.core import workspace as workspace_mod
from workbench.core.naming import BranchSuggester
from workbench.db.models import (
    DestroyWorkspaceRequest,
    ListSessionsRequest,
    SessionListResult,
    StartTaskRequest,
    TeardownResult,
    ToolResult,
    WorkspaceResult,
    describe_validation_error,
)
from workbench.integrations.git import NotARepositoryError, get_repo_root
from workbench.integrations.terminal import TerminalAdapter


class UnknownCommandError(KeyError):
    """Raised when dispatching a name that is not registered."""


@dataclass
class CommandContext:
    base_path: Path
    loaded_config: LoadedConfig | None = None
    terminal: TerminalAdapter | None = None
    suggester: BranchSuggester | None = None
    opencode_session_id: str | None = None
    open_terminal: bool | None = None
    run_hooks: bool | None = None


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    input_model: type[BaseModel]
    output_model: type[ToolResult]
    handler: Callable[[BaseModel, CommandContext], ToolResult]


def _start_task(args: StartTaskRequest, ctx: CommandContext) -> WorkspaceResult:
    return workspace_mod.create_workspace(
        args,
        ctx.base_path,
        loaded_config=ctx.loaded_config,
        terminal=ctx.terminal,
        suggester=ctx.suggester,
        opencode_session_id=ctx.opencode_session_id,
        open_terminal=ctx.open_terminal,
        run_hooks=ctx.run_hooks,
    )


def _destroy_workspace(args: DestroyWorkspaceRequest, ctx: CommandContext) -> TeardownResult:
    return workspace_mod.destroy_workspace(
        args, ctx.base_path, loaded_config=ctx.loaded_config, run_hooks=ctx.run_hooks
    )


def _list_sessions(args: ListSessionsRequest, ctx: CommandContext) -> SessionListResult:
    try:
        repo_root = get_repo_root(ctx.base_path)
    except NotARepositoryError as e:
        return SessionListResult.failed(str(e))
    sessions = sessions_mod.list_sessions(repo_root)
    return SessionListResult(status="ok", message=f"{len(sessions)} session(s)", sessions=sessions)


COMMANDS: dict[str, Command] = {
    command.name: command
    for command in (
        Command(
            name="start-task",
            description=(
                "Create an isolated git worktree for a task, or resume the existing one. "
                "The branch name is derived from the task id and title unless given."
            ),
            input_model=StartTaskRequest,
            output_model=WorkspaceResult,
            handler=_start_task,
        ),
        Command(
            name="destroy-workspace",
            description="Run beforeDestroy hooks, remove a task's worktree and forget its session.",
            input_model=DestroyWorkspaceRequest,
            output_model=TeardownResult,
            handler=_destroy_workspace,
        ),
        Command(
            name="list-sessions",
            description="List every recorded task session in the repository.",
            input_model=ListSessionsRequest,
            output_model=SessionListResult,
            handler=_list_sessions,
        ),
    )
}


def get_command(name: str) -> Command:
    try:
        return COMMANDS[name]
    except KeyError:
        raise UnknownCommandError(name) from None


def dispatch(name: str, payload: dict, ctx: CommandContext) -> dict:
    """Validate payload for the named command, run it, return the wire dict."""
    command = get_command(name)
    try:
        args = command.input_model.model_validate(payload)
    except ValidationError as e:
        fields = {}
        if "task_id" in command.output_model.model_fields:
            fields["task_id"] = str(payload.get("taskId") or payload.get("task_id") or "")
        message = describe_validation_error(e)
        return command.output_model.failed(message, **fields).to_wire()
    return command.handler(args, ctx).to_wire()
