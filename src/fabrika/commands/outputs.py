"""Commands dealing with step output files: manual and export."""

from pathlib import Path

import typer
from rich.table import Table

from ..errors import FabrikaError
from ..output import get_output_context
from .common import abort, load_orchestrator, load_project


def manual() -> None:
    """List manual output files found in the outputs directory."""
    ctx = get_output_context()
    project = load_project(ctx)
    orchestrator = load_orchestrator(ctx, project)

    try:
        found = orchestrator.detector.detect_all_manual_steps()
    except FabrikaError as e:
        abort(ctx, e)

    if ctx.json_mode:
        ctx.print_json(
            {
                "outputs_dir": str(project.outputs_dir),
                "manual": [
                    {
                        "step": step_id.value,
                        "path": str(result.file_path),
                        "modified_at": result.modified_at,
                        "empty": not (result.content or "").strip(),
                    }
                    for step_id, result in found.items()
                ],
            }
        )
        return

    if not found:
        ctx.console.print(f"No manual outputs in {project.outputs_dir}")
        ctx.console.print("  Add one as <stepId>.md, e.g. step-01-brainstorming.md")
        return

    table = Table(title="Manual outputs")
    table.add_column("Step")
    table.add_column("File")
    table.add_column("Modified")
    for step_id, result in found.items():
        empty = not (result.content or "").strip()
        table.add_row(
            step_id.value,
            str(result.file_path) + (" [yellow](empty)[/yellow]" if empty else ""),
            result.modified_at.strftime("%Y-%m-%d %H:%M") if result.modified_at else "-",
        )
    ctx.console.print(table)


def export(
    directory: Path = typer.Argument(..., help="Destination directory"),
) -> None:
    """Write every completed step output to DIRECTORY/<stepId>.md."""
    ctx = get_output_context()
    project = load_project(ctx)
    orchestrator = load_orchestrator(ctx, project)

    try:
        outputs = orchestrator.completed_outputs()
    except FabrikaError as e:
        abort(ctx, e)

    if not outputs:
        ctx.error("No completed steps to export")
        raise typer.Exit(1)

    written: list[str] = []
    try:
        directory.mkdir(parents=True, exist_ok=True)
        for step_id, output in outputs.items():
            path = directory / f"{step_id.value}.md"
            path.write_text(output.content, encoding="utf-8")
            written.append(str(path))
    except OSError as e:
        ctx.error(f"Export failed: {e}", {"written": written})
        raise typer.Exit(1) from None

    ctx.success(f"Exported {len(written)} output(s) to {directory}", {"files": written})
