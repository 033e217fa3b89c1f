"""Helpers shared by CLI commands."""

import logging
from typing import NoReturn

import typer

from ..constants import (
    EXIT_CHECKPOINT_IO,
    EXIT_ERROR,
    EXIT_LOCKED,
    EXIT_NOT_INITIALIZED,
)
from ..core import WorkflowOrchestrator, create_orchestrator
from ..errors import (
    CheckpointReadFailed,
    CheckpointWriteFailed,
    FabrikaError,
    LockError,
)
from ..models import StepId
from ..output import OutputContext
from ..project import NotInitialized, Project, open_project

logger = logging.getLogger(__name__)


def exit_code_for(error: FabrikaError) -> int:
    """Map an engine error to a CLI exit code."""
    if isinstance(error, NotInitialized):
        return EXIT_NOT_INITIALIZED
    if isinstance(error, LockError):
        return EXIT_LOCKED
    if isinstance(error, CheckpointReadFailed | CheckpointWriteFailed):
        return EXIT_CHECKPOINT_IO
    return EXIT_ERROR


def abort(ctx: OutputContext, error: FabrikaError) -> NoReturn:
    """Report ``error`` and exit with its code."""
    logger.debug("Aborting: %s", error)
    ctx.failure(error)
    raise typer.Exit(exit_code_for(error)) from error


def load_project(ctx: OutputContext) -> Project:
    try:
        return open_project(ctx.project_path)
    except FabrikaError as e:
        abort(ctx, e)


def load_orchestrator(
    ctx: OutputContext, project: Project, project_idea: str | None = None
) -> WorkflowOrchestrator:
    try:
        return create_orchestrator(project.path, project.config, project_idea=project_idea)
    except FabrikaError as e:
        abort(ctx, e)


def parse_step(ctx: OutputContext, value: str) -> StepId:
    """Resolve a step argument or exit with an error."""
    try:
        return StepId.parse(value)
    except ValueError:
        ctx.error(f"Unknown step: {value}", {"available": [s.value for s in StepId]})
        raise typer.Exit(EXIT_ERROR) from None
