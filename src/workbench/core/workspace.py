"""Create-or-resume and tear-down of task workspaces.

``create_workspace`` walks a fixed sequence: check for an existing session,
then either reuse it or name a branch and create a worktree, persist the
session, run the afterCreate hooks and open a terminal. Each step happens
strictly after the previous one and later failures never undo earlier ones.
Hook and terminal problems are reported as warnings; anything else ends the
run with a ``failed`` result. Neither entry point raises.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from workbench.config import LoadedConfig, WorkbenchConfig, load_config, resolve_worktrees_dir
from workbench.core import sessions as sessions_mod
from workbench.core import worktrees as worktrees_mod
from workbench.core.hooks import HookExecutionError, hooks_for, run_hooks as run_hook_commands
from workbench.core.naming import BranchSuggester, coerce_branch_name, generate_branch_name
from workbench.db.models import (
    DestroyWorkspaceRequest,
    Session,
    StartTaskRequest,
    TeardownResult,
    WorkspaceResult,
    describe_validation_error,
    utc_now,
)
from workbench.integrations.git import get_repo_root
from workbench.integrations.terminal import TerminalAdapter, get_terminal_adapter

logger = logging.getLogger(__name__)


def _workspace_alive(repo_root: Path, session: Session) -> bool:
    """The recorded directory exists and git still tracks a worktree there.

    The checked-out branch is irrelevant: a switched, detached or
    mid-rebase HEAD is still the task's workspace.
    """
    if not Path(session.worktree_path).is_dir():
        return False
    wt = worktrees_mod.find_worktree_at(session.worktree_path, repo_root)
    if wt is None:
        return False
    if wt.branch != session.branch:
        logger.info(
            "Worktree for task %s has %s checked out instead of %s",
            session.task_id,
            wt.branch or "a detached HEAD",
            session.branch,
        )
    return True


def _pick_branch(
    request: StartTaskRequest,
    config: WorkbenchConfig,
    suggester: BranchSuggester | None,
) -> str:
    task = request.descriptor()
    if request.branch_type:
        task = task.model_copy(update={"type": request.branch_type})

    override = None
    if request.branch_slug:
        override = coerce_branch_name(
            task.type, request.branch_slug, config.default_branch_type, config.max_branch_slug_length
        )
    elif config.use_ai_branch_naming and suggester is not None:
        try:
            override = suggester.suggest(task)
        except Exception as e:
            logger.warning("Branch suggester failed for task %s: %s", task.task_id, e)
        if override is not None and task.type:
            override = override.model_copy(update={"type": task.type})

    branch = generate_branch_name(
        task,
        default_type=config.default_branch_type,
        max_slug_length=config.max_branch_slug_length,
        override=override,
    )
    return str(branch)


def _open_terminal(
    terminal: TerminalAdapter,
    session: Session,
    config: WorkbenchConfig,
    warnings: list[str],
) -> None:
    title = f"{session.task_id}: {session.task_name}"
    try:
        terminal.open_session(session.worktree_path, title, config.session_command)
    except Exception as e:
        logger.warning("Could not open %s terminal for %s: %s", terminal.name, session.task_id, e)
        warnings.append(f"Terminal ({terminal.name}) not opened: {e}")


def _run_after_create(
    commands: list[str],
    worktree_path: str,
    config: WorkbenchConfig,
    warnings: list[str],
) -> None:
    try:
        report = run_hook_commands(commands, worktree_path, timeout=config.hook_timeout)
    except HookExecutionError as e:
        logger.warning("%s", e)
        warnings.append(str(e))
        return
    warnings.extend(str(err) for err in report.errors)


def create_workspace(
    request: StartTaskRequest | dict,
    base_path: str | Path,
    loaded_config: LoadedConfig | None = None,
    terminal: TerminalAdapter | None = None,
    suggester: BranchSuggester | None = None,
    opencode_session_id: str | None = None,
    open_terminal: bool | None = None,
    run_hooks: bool | None = None,
    hooks: list[str] | None = None,
) -> WorkspaceResult:
    """Create or resume the isolated workspace for a task."""
    task_id = request.get("taskId", request.get("task_id", "")) if isinstance(request, dict) else request.task_id
    try:
        if isinstance(request, dict):
            request = StartTaskRequest.model_validate(request)
        return _create_workspace(
            request,
            base_path,
            loaded_config,
            terminal,
            suggester,
            opencode_session_id,
            open_terminal,
            run_hooks,
            hooks,
        )
    except ValidationError as e:
        return WorkspaceResult.failed(describe_validation_error(e), task_id=str(task_id or ""))
    except Exception as e:
        logger.error(
            "Workspace creation failed for task %s: %s", task_id, e, exc_info=logger.isEnabledFor(logging.DEBUG)
        )
        return WorkspaceResult.failed(str(e) or type(e).__name__, task_id=str(task_id or ""))


def _create_workspace(
    request: StartTaskRequest,
    base_path: str | Path,
    loaded_config: LoadedConfig | None,
    terminal: TerminalAdapter | None,
    suggester: BranchSuggester | None,
    opencode_session_id: str | None,
    open_terminal: bool | None,
    run_hooks: bool | None,
    hooks: list[str] | None,
) -> WorkspaceResult:
    repo_root = get_repo_root(base_path)
    if loaded_config is None:
        loaded_config = load_config(repo_root)
    config = loaded_config.config
    if open_terminal is None:
        open_terminal = config.auto_open_terminal
    if run_hooks is None:
        run_hooks = config.auto_run_hooks
    if terminal is None:
        terminal = get_terminal_adapter(config.terminal)
    warnings: list[str] = []

    existing = sessions_mod.find_session_by_task(repo_root, request.task_id)

    if existing and _workspace_alive(repo_root, existing):
        session = sessions_mod.touch_session(repo_root, request.task_id, opencode_session_id) or existing
        logger.info("Resuming workspace for task %s at %s", session.task_id, session.worktree_path)
        if open_terminal:
            _open_terminal(terminal, session, config, warnings)
        return WorkspaceResult(
            status="existing",
            message=f"Resumed existing worktree for task: {session.task_id}",
            task_id=session.task_id,
            task_name=session.task_name,
            branch=session.branch,
            worktree_path=session.worktree_path,
            opencode_session_id=session.opencode_session_id,
            config_source=loaded_config.source,
            warnings=warnings,
        )

    if existing:
        logger.warning(
            "Worktree for task %s is gone (%s); recreating it", existing.task_id, existing.worktree_path
        )
        warnings.append(f"Recorded worktree {existing.worktree_path} was missing and has been recreated")
        branch = existing.branch
    else:
        branch = _pick_branch(request, config, suggester)

    base_branch = request.base_branch or config.default_base_branch
    wt_path = worktrees_mod.create_worktree(
        branch, base_branch, repo_root, resolve_worktrees_dir(repo_root, config)
    )

    now = utc_now()
    session = sessions_mod.save_session(
        repo_root,
        Session(
            task_id=request.task_id,
            task_name=request.title,
            branch=branch,
            worktree_path=str(wt_path),
            opencode_session_id=opencode_session_id or (existing.opencode_session_id if existing else None),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        ),
    )

    if run_hooks:
        commands = hooks if hooks is not None else hooks_for(config).after_create
        _run_after_create(commands, session.worktree_path, config, warnings)

    if open_terminal:
        _open_terminal(terminal, session, config, warnings)

    return WorkspaceResult(
        status="created",
        message=f"Created new worktree for task: {session.task_id}",
        task_id=session.task_id,
        task_name=session.task_name,
        branch=session.branch,
        worktree_path=session.worktree_path,
        opencode_session_id=session.opencode_session_id,
        config_source=loaded_config.source,
        warnings=warnings,
    )


def destroy_workspace(
    request: DestroyWorkspaceRequest | dict,
    base_path: str | Path,
    loaded_config: LoadedConfig | None = None,
    run_hooks: bool | None = None,
) -> TeardownResult:
    """Run beforeDestroy hooks, remove the worktree and forget the session."""
    task_id = request.get("taskId", request.get("task_id", "")) if isinstance(request, dict) else request.task_id
    try:
        if isinstance(request, dict):
            request = DestroyWorkspaceRequest.model_validate(request)
        return _destroy_workspace(request, base_path, loaded_config, run_hooks)
    except ValidationError as e:
        return TeardownResult.failed(describe_validation_error(e), task_id=str(task_id or ""))
    except Exception as e:
        logger.error(
            "Workspace teardown failed for task %s: %s", task_id, e, exc_info=logger.isEnabledFor(logging.DEBUG)
        )
        return TeardownResult.failed(str(e) or type(e).__name__, task_id=str(task_id or ""))


def _destroy_workspace(
    request: DestroyWorkspaceRequest,
    base_path: str | Path,
    loaded_config: LoadedConfig | None,
    run_hooks: bool | None,
) -> TeardownResult:
    repo_root = get_repo_root(base_path)
    if loaded_config is None:
        loaded_config = load_config(repo_root)
    config = loaded_config.config
    if run_hooks is None:
        run_hooks = config.auto_run_hooks

    session = sessions_mod.find_session_by_task(repo_root, request.task_id)
    if session is None:
        return TeardownResult.failed(f"No session for task: {request.task_id}", task_id=request.task_id)

    warnings: list[str] = []
    result = TeardownResult(
        status="removed",
        task_id=session.task_id,
        branch=session.branch,
        worktree_path=session.worktree_path,
        warnings=warnings,
    )

    wt_path = Path(session.worktree_path)
    if wt_path.is_dir():
        commands = hooks_for(config).before_destroy
        if run_hooks and commands:
            try:
                report = run_hook_commands(commands, wt_path, timeout=config.hook_timeout)
                warnings.extend(str(err) for err in report.errors)
            except HookExecutionError as e:
                warnings.append(str(e))
        worktrees_mod.remove_worktree(wt_path, force=request.force, base_path=repo_root)
        result.worktree_removed = True
    else:
        worktrees_mod.prune_worktrees(repo_root)
        warnings.append(f"Worktree {wt_path} was already gone")

    if request.delete_branch:
        result.branch_deleted = worktrees_mod.remove_branch(repo_root, session.branch, force=request.force)

    if not request.keep_session:
        result.session_removed = sessions_mod.remove_session(repo_root, session.task_id)

    result.message = f"Removed workspace for task: {session.task_id}"
    result.warnings = warnings
    return result
