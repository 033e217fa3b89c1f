"""CLI command implementations for fabrika.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .init import init
from .outputs import export, manual
from .run import run
from .status import status
from .step import fresh, reset, skip
from .steps import steps

__all__ = [
    "export",
    "fresh",
    "init",
    "manual",
    "reset",
    "run",
    "skip",
    "status",
    "steps",
]
