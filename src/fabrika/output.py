"""Output formatting for fabrika CLI.

Human-readable text goes to the Rich console; with ``--json`` the same
events are emitted as one JSON document per command on stdout.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console

from .errors import FabrikaError


@dataclass
class OutputContext:
    """Where command output goes and in which format."""

    console: Console
    json_mode: bool = False
    project_path: Path = field(default_factory=Path.cwd)

    def print(self, message: str, style: str | None = None) -> None:
        """Print to the console unless in JSON mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_json(self, data: dict[str, Any]) -> None:
        if self.json_mode:
            print(json.dumps(data, indent=2, default=str, ensure_ascii=False))

    def _emit(self, key: str, message: str, data: dict[str, Any] | None, markup: str) -> None:
        if self.json_mode:
            self.print_json({key: message, **(data or {})})
        else:
            self.console.print(markup.format(message=message))

    def result(self, data: dict[str, Any], message: str = "") -> None:
        """Emit ``data`` as JSON, or ``message`` (if any) as text."""
        if self.json_mode:
            self.print_json(data)
        elif message:
            self.console.print(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._emit("error", message, data, "[red]Error: {message}[/red]")

    def failure(self, error: FabrikaError) -> None:
        """Report a fabrika error with its code and retryability."""
        self.error(
            error.user_message,
            {"code": error.code.value, "retryable": error.retryable, "details": str(error)},
        )

    def success(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._emit("success", message, data, "[green]{message}[/green]")


_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Return the context set by the CLI callback, or a plain console one."""
    if _ctx is None:
        return OutputContext(Console())
    return _ctx


def set_output_context(ctx: OutputContext) -> None:
    global _ctx
    _ctx = ctx
