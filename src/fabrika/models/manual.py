"""Manual output detection result."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class ManualStepResult:
    """Result of looking for a human-authored output file.

    Not persisted; consumed immediately to build a ``StepOutput``.
    """

    detected: bool
    file_path: Path | None = None
    content: str | None = None
    modified_at: datetime | None = None
