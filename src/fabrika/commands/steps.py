"""Steps command: list the workflow's step definitions."""

from rich.table import Table

from ..core import REQUIRED_SECTIONS, StepRegistry
from ..output import get_output_context


def steps() -> None:
    """List workflow steps in order."""
    ctx = get_output_context()
    registry = StepRegistry()

    if ctx.json_mode:
        ctx.print_json(
            {
                "steps": [
                    {
                        "number": step.number,
                        "id": step.id.value,
                        "name": step.name,
                        "category": step.category.value,
                        "required_inputs": [s.value for s in step.required_inputs],
                        "required_sections": list(REQUIRED_SECTIONS[step.id]),
                    }
                    for step in registry
                ]
            }
        )
        return

    table = Table(title="Workflow steps")
    table.add_column("#", justify="right")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Inputs")
    for step in registry:
        table.add_row(
            str(step.number),
            step.id.value,
            step.name,
            step.category.value,
            ", ".join(str(s.number) for s in step.required_inputs) or "-",
        )
    ctx.console.print(table)
