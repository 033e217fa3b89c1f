"""Detection of human-authored step outputs.

A step is completed manually by dropping ``<stepId>.md`` into the
outputs directory. Presence alone signals completion; the file's
modification time is recorded alongside the content.
"""

import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from ..errors import OutputReadFailed
from ..models import ManualStepResult, StepId, StepOutput

NOT_DETECTED = ManualStepResult(detected=False)


class ManualStepDetector:
    """Look for manual output files under an outputs directory."""

    def __init__(self, outputs_dir: Path, logger: logging.Logger | None = None) -> None:
        self.outputs_dir = outputs_dir
        self.logger = logger or logging.getLogger(__name__)

    def output_path(self, step_id: StepId) -> Path:
        """Expected manual output path for a step."""
        return self.outputs_dir / f"{StepId(step_id).value}.md"

    def has_manual_output(self, step_id: StepId) -> bool:
        """Check whether a manual output file exists (never raises)."""
        try:
            return self.output_path(step_id).is_file()
        except OSError:
            return False

    def detect_manual_step(self, step_id: StepId) -> ManualStepResult:
        """Read a step's manual output with its modification time.

        Content and mtime come from the same open file handle, so a file
        replaced between the two reads cannot mix old and new values.

        Returns:
            Detection result (``detected=False`` when no file exists)

        Raises:
            OutputReadFailed: If the file existed but vanished or became
                unreadable before the read completed
        """
        path = self.output_path(step_id)
        if not self.has_manual_output(step_id):
            return NOT_DETECTED

        try:
            with open(path, encoding="utf-8") as f:
                stat = os.fstat(f.fileno())
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise OutputReadFailed(path, e) from e

        modified_at = datetime.fromtimestamp(stat.st_mtime, tz=UTC)
        self.logger.debug("Manual output found for %s at %s", StepId(step_id).value, path)
        return ManualStepResult(
            detected=True, file_path=path, content=content, modified_at=modified_at
        )

    def load_manual_output(self, step_id: StepId) -> StepOutput | None:
        """Build a ``StepOutput`` from a step's manual file.

        Returns None when no file exists or the file has no content.

        Raises:
            OutputReadFailed: See ``detect_manual_step``
        """
        result = self.detect_manual_step(step_id)
        return to_step_output(result)

    def detect_all_manual_steps(self) -> dict[StepId, ManualStepResult]:
        """Detect manual outputs for every step, in workflow order."""
        found: dict[StepId, ManualStepResult] = {}
        for step_id in StepId:
            result = self.detect_manual_step(step_id)
            if result.detected:
                found[step_id] = result
        return found


def to_step_output(result: ManualStepResult) -> StepOutput | None:
    """Convert a detection result into a ``StepOutput``.

    An empty or whitespace-only file counts as no output.
    """
    if not result.detected or result.content is None or not result.content.strip():
        return None
    return StepOutput(
        content=result.content,
        files=[str(result.file_path)] if result.file_path else [],
        metadata={
            "source": "manual",
            "detectedAt": datetime.now(UTC).isoformat(),
            "originalModifiedAt": result.modified_at.isoformat() if result.modified_at else None,
        },
    )
