"""Init command implementation."""

import typer

from ..constants import EXIT_PROVIDER_UNAVAILABLE
from ..errors import FabrikaError
from ..output import get_output_context
from ..project import init_project
from ..services import create_provider
from .common import abort, load_orchestrator


def init() -> None:
    """Initialize fabrika in the project directory."""
    ctx = get_output_context()

    try:
        project, created = init_project(ctx.project_path)
    except OSError as e:
        ctx.error(f"Cannot create {ctx.project_path}: {e}")
        raise typer.Exit(1) from None
    except FabrikaError as e:
        abort(ctx, e)

    config_path = project.fabrika_dir / "config.toml"
    if created:
        ctx.print(f"[green]Created config template:[/green] {config_path}")
    else:
        ctx.print(f"[yellow]Config already exists:[/yellow] {config_path}")

    orchestrator = load_orchestrator(ctx, project)
    try:
        initialized = orchestrator.initialize()
    except FabrikaError as e:
        abort(ctx, e)
    if initialized:
        ctx.print(f"Initialized {len(initialized)} step checkpoint(s)")

    try:
        provider = create_provider(project.config.provider)
    except FabrikaError as e:
        abort(ctx, e)
    available = provider.validate_key()
    if available:
        ctx.print(f"[green]✓[/green] {provider.name}")
    else:
        ctx.print(f"[red]✗[/red] {provider.name}: not found in PATH or not responding")

    ctx.result(
        {
            "project": str(project.path),
            "config": str(config_path),
            "config_created": created,
            "initialized_steps": [step.value for step in initialized],
            "provider": provider.name,
            "provider_available": available,
        }
    )

    if not available:
        ctx.print("\n[yellow]Warning: Completion provider is missing or not configured[/yellow]")
        raise typer.Exit(EXIT_PROVIDER_UNAVAILABLE)

    ctx.print("\n[bold green]Fabrika initialized successfully![/bold green]")
