"""Status command for workflow overview."""

from rich.table import Table

from ..core import format_resume_info
from ..errors import FabrikaError
from ..models import StepStatus
from ..output import get_output_context
from .common import abort, load_orchestrator, load_project

STATUS_STYLES = {
    StepStatus.PENDING: "dim",
    StepStatus.IN_PROGRESS: "yellow",
    StepStatus.COMPLETED: "green",
    StepStatus.SKIPPED: "cyan",
}


def status() -> None:
    """Show per-step status, progress and where a resume would continue."""
    ctx = get_output_context()
    project = load_project(ctx)
    orchestrator = load_orchestrator(ctx, project)

    try:
        checkpoints = orchestrator.checkpoints()
        progress = orchestrator.progress()
        info = orchestrator.resume_info()
    except FabrikaError as e:
        abort(ctx, e)

    if ctx.json_mode:
        ctx.print_json(
            {
                "project": project.config.project.name,
                "steps": [
                    {
                        "id": step.id.value,
                        "name": step.name,
                        "status": (
                            checkpoints[step.id].status.value
                            if step.id in checkpoints
                            else StepStatus.PENDING.value
                        ),
                        "mode": (
                            checkpoints[step.id].automation_mode.value
                            if step.id in checkpoints
                            else None
                        ),
                        "retry_count": (
                            checkpoints[step.id].retry_count if step.id in checkpoints else 0
                        ),
                    }
                    for step in orchestrator.registry
                ],
                "progress": {
                    "total": progress.total,
                    "completed": progress.completed,
                    "skipped": progress.skipped,
                    "in_progress": progress.in_progress,
                    "pending": progress.pending,
                    "current": progress.current.value if progress.current else None,
                },
                "can_resume": info.can_resume,
            }
        )
        return

    table = Table(title=f"Project: {project.config.project.name}")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Mode")
    table.add_column("Error")
    for step in orchestrator.registry:
        checkpoint = checkpoints.get(step.id)
        state = checkpoint.status if checkpoint else StepStatus.PENDING
        error = ""
        if checkpoint and checkpoint.error:
            error = f"{checkpoint.error.code} x{checkpoint.error.retry_count}"
        table.add_row(
            str(step.number),
            step.name,
            f"[{STATUS_STYLES[state]}]{state.value}[/{STATUS_STYLES[state]}]",
            checkpoint.automation_mode.value if checkpoint else "-",
            error,
        )
    ctx.console.print(table)

    ctx.console.print(
        f"\n[bold]Progress:[/bold] {progress.completed + progress.skipped}/{progress.total}"
        f" ({progress.percent}%)"
    )
    if info.can_resume:
        ctx.console.print(f"\n{format_resume_info(info)}")
        ctx.console.print("  Next: fabrika run")
    elif progress.current is None:
        ctx.console.print("[green]Status: Workflow complete[/green]")
        ctx.console.print("  Next: fabrika export <dir>")
    else:
        ctx.console.print("  Next: fabrika run")
