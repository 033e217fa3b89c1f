"""Run command: execute the workflow or a single step."""

import logging
import sys

import typer
from simple_term_menu import TerminalMenu

from ..constants import EXIT_STEP_BLOCKED, EXIT_STEP_FAILED
from ..core import (
    StepOutcome,
    StepRunResult,
    WorkflowOrchestrator,
    format_resume_info,
    update_heartbeat,
    workflow_lock,
)
from ..core.orchestrator import RESUME_MESSAGES
from ..errors import FabrikaError
from ..logging import run_log
from ..output import OutputContext, get_output_context
from .common import abort, load_orchestrator, load_project, parse_step

logger = logging.getLogger(__name__)

RESUME_CHOICES = ["Kaldığı yerden devam et", "Baştan başla", "İptal"]


def _is_interactive() -> bool:
    return sys.stdin.isatty()


def _describe(orchestrator: WorkflowOrchestrator, result: StepRunResult) -> str:
    name = orchestrator.registry.get(result.step_id).name
    label = f"{result.step_id.number:02d} {name}"
    match result.outcome:
        case StepOutcome.COMPLETED:
            return f"[green]✓[/green] {label}"
        case StepOutcome.COMPLETED_MANUAL:
            return f"[green]✓[/green] {label} [cyan](manual)[/cyan]"
        case StepOutcome.ALREADY_COMPLETED:
            return f"[dim]· {label} already completed[/dim]"
        case StepOutcome.SKIPPED:
            return f"[cyan]↷[/cyan] {label} skipped"
        case StepOutcome.NOT_RUNNABLE:
            waiting = ", ".join(s.value for s in result.missing_inputs)
            return f"[yellow]…[/yellow] {label} waiting for: {waiting}"
        case StepOutcome.BLOCKED:
            message = result.error.message if result.error else ""
            return f"[red]✗[/red] {label}: {message} (retry limit reached)"
        case _:
            message = result.error.message if result.error else ""
            retry = "retryable" if result.retryable else "not retryable"
            return f"[red]✗[/red] {label}: {message} ({retry})"


def _result_data(result: StepRunResult) -> dict[str, object]:
    return {
        "step": result.step_id.value,
        "outcome": result.outcome.value,
        "retryable": result.retryable,
        "error": result.error.model_dump(by_alias=True) if result.error else None,
        "missing_inputs": [s.value for s in result.missing_inputs],
    }


def _exit_code(result: StepRunResult | None) -> int:
    if result is None or result.succeeded:
        return 0
    if result.outcome == StepOutcome.FAILED:
        return EXIT_STEP_FAILED
    return EXIT_STEP_BLOCKED


def _offer_resume(ctx: OutputContext, orchestrator: WorkflowOrchestrator) -> None:
    """Ask whether to resume or start over when earlier progress exists."""
    info = orchestrator.resume_info()
    if not info.can_resume:
        return

    ctx.console.print(f"[yellow]{format_resume_info(info)}[/yellow]\n")
    menu = TerminalMenu(RESUME_CHOICES, clear_screen=False, cycle_cursor=True)
    selection = menu.show()

    if selection == 0:
        ctx.console.print(RESUME_MESSAGES["resuming"])
        if info.current_step_name:
            ctx.console.print(
                RESUME_MESSAGES["resume_success"].format(step_name=info.current_step_name)
            )
    elif selection == 1:
        ctx.console.print(RESUME_MESSAGES["starting_fresh"])
        orchestrator.start_fresh()
        ctx.console.print(f"[green]{RESUME_MESSAGES['fresh_success']}[/green]")
    else:
        ctx.console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)


def run(
    step: str | None = typer.Option(
        None, "--step", "-s", help="Run only this step (id, number or slug)"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Re-run completed steps and ignore the retry limit"
    ),
    auto_retry: bool | None = typer.Option(
        None,
        "--auto-retry/--no-auto-retry",
        help="Retry retryable failures after a delay (default from config)",
    ),
    idea: str | None = typer.Option(None, "--idea", help="Project idea (overrides config)"),
) -> None:
    """Run the workflow, resuming from checkpoints."""
    ctx = get_output_context()
    project = load_project(ctx)
    step_id = parse_step(ctx, step) if step else None
    orchestrator = load_orchestrator(ctx, project, project_idea=idea)

    if not orchestrator.project_idea:
        ctx.print(
            "[yellow]Warning: No project idea set (project.idea in config.toml or --idea)[/yellow]"
        )

    def report(result: StepRunResult) -> None:
        update_heartbeat(project.fabrika_dir)
        ctx.print(_describe(orchestrator, result))

    last: StepRunResult | None = None
    data: dict[str, object] = {}
    try:
        with (
            workflow_lock(project.fabrika_dir, str(project.path), "run"),
            run_log(project.logs_dir) as log_path,
        ):
            logger.debug("Run log: %s", log_path)
            if step_id is not None:
                orchestrator.initialize()
                last = orchestrator.run_step(step_id, force=force)
                report(last)
                data = {"results": [_result_data(last)]}
            else:
                if not force and not ctx.json_mode and _is_interactive():
                    _offer_resume(ctx, orchestrator)
                outcome = orchestrator.run(force=force, auto_retry=auto_retry, on_step=report)
                last = outcome.last
                data = {
                    "finished": outcome.finished,
                    "results": [_result_data(r) for r in outcome.results],
                }
                if outcome.finished:
                    ctx.print("\n[bold green]Workflow complete![/bold green]")
    except FabrikaError as e:
        abort(ctx, e)

    ctx.print_json(data)
    code = _exit_code(last)
    if code:
        ctx.print("  Next: fix the problem, then run 'fabrika run' again")
        raise typer.Exit(code)
