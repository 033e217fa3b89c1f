"""Operator overrides: skip, reset and start fresh."""

import typer

from ..core import workflow_lock
from ..core.orchestrator import RESUME_MESSAGES
from ..errors import FabrikaError
from ..output import get_output_context
from .common import abort, load_orchestrator, load_project, parse_step


def skip(
    step: str = typer.Argument(..., help="Step id, number or slug"),
) -> None:
    """Mark a step as skipped so the workflow can move past it."""
    ctx = get_output_context()
    project = load_project(ctx)
    step_id = parse_step(ctx, step)
    orchestrator = load_orchestrator(ctx, project)

    try:
        with workflow_lock(project.fabrika_dir, str(project.path), "skip"):
            orchestrator.skip_step(step_id)
    except FabrikaError as e:
        abort(ctx, e)

    ctx.success(f"Skipped {step_id.value}", {"step": step_id.value, "status": "skipped"})


def reset(
    step: str = typer.Argument(..., help="Step id, number or slug"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Reset a step to pending, discarding its output and error."""
    ctx = get_output_context()
    project = load_project(ctx)
    step_id = parse_step(ctx, step)
    orchestrator = load_orchestrator(ctx, project)

    if not yes and not ctx.json_mode:
        typer.confirm(f"Reset {step_id.value}?", abort=True)

    try:
        with workflow_lock(project.fabrika_dir, str(project.path), "reset"):
            orchestrator.reset_step(step_id)
    except FabrikaError as e:
        abort(ctx, e)

    ctx.success(f"Reset {step_id.value}", {"step": step_id.value, "status": "pending"})


def fresh(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Discard all checkpoints and start the workflow over."""
    ctx = get_output_context()
    project = load_project(ctx)
    orchestrator = load_orchestrator(ctx, project)

    if not yes and not ctx.json_mode:
        typer.confirm("Discard all progress?", abort=True)

    try:
        with workflow_lock(project.fabrika_dir, str(project.path), "fresh"):
            removed = orchestrator.start_fresh()
    except FabrikaError as e:
        abort(ctx, e)

    ctx.print(RESUME_MESSAGES["checkpoint_cleared"])
    ctx.success(RESUME_MESSAGES["fresh_success"], {"removed": removed})
