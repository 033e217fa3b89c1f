"""Checkpoint models for per-step persistence.

A checkpoint is the durable record of one step's execution. Exactly one
checkpoint file exists per step. Records are serialized with camelCase
keys and carry an explicit ``schemaVersion`` tag; records written before
the tag existed are migrated on read (see ``core.checkpoint_store``).
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..constants import CHECKPOINT_SCHEMA_VERSION
from .step import StepId, StepOutput


class StepStatus(str, Enum):
    """Execution status of a step."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class AutomationMode(str, Enum):
    """Where a step's output came from."""

    AUTO = "auto"
    MANUAL = "manual"


class CheckpointError(BaseModel):
    """Failure tracked on an in-progress step for retry.

    Attributes:
        code: Error code (e.g. E001).
        message: User-facing error message.
        retry_count: Failed attempts so far. Only ever increases.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    code: str
    message: str
    retry_count: int = Field(default=0, ge=0)


class StepCheckpoint(BaseModel):
    """Durable record of one step's execution.

    Invariants:
        - ``output`` is present if and only if ``status`` is completed.
        - ``error`` is only present while ``status`` is in-progress.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    schema_version: Literal[2] = CHECKPOINT_SCHEMA_VERSION
    step_id: StepId
    status: StepStatus = StepStatus.PENDING
    automation_mode: AutomationMode = AutomationMode.AUTO
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration: int | None = Field(default=None, ge=0, description="Execution duration in ms")
    output: StepOutput | None = None
    error: CheckpointError | None = None

    @model_validator(mode="after")
    def check_status_invariants(self) -> Self:
        """Reject records whose fields contradict their status."""
        if self.status == StepStatus.COMPLETED and self.output is None:
            raise ValueError("completed checkpoint requires output")
        if self.status != StepStatus.COMPLETED and self.output is not None:
            raise ValueError(f"{self.status.value} checkpoint must not carry output")
        if self.error is not None and self.status != StepStatus.IN_PROGRESS:
            raise ValueError(f"{self.status.value} checkpoint must not carry an error")
        return self

    @property
    def retry_count(self) -> int:
        """Failed attempts recorded so far (0 when no error is tracked)."""
        return self.error.retry_count if self.error else 0

    @property
    def is_finished(self) -> bool:
        """True for terminal states (completed or skipped)."""
        return self.status in (StepStatus.COMPLETED, StepStatus.SKIPPED)


class LegacyStepCheckpoint(BaseModel):
    """Checkpoint format written before status tracking existed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    step_id: StepId
    executed_at: datetime
    duration: int = 0
    success: bool
    output: StepOutput | None = None

    def migrate(self) -> StepCheckpoint:
        """Translate into the current schema.

        ``success`` becomes ``completed`` with ``completedAt = executedAt``.
        A failed legacy run becomes ``in-progress`` and drops its output.
        """
        if self.success and self.output is not None:
            return StepCheckpoint(
                step_id=self.step_id,
                status=StepStatus.COMPLETED,
                automation_mode=AutomationMode.AUTO,
                started_at=self.executed_at,
                completed_at=self.executed_at,
                duration=self.duration,
                output=self.output,
            )
        return StepCheckpoint(
            step_id=self.step_id,
            status=StepStatus.IN_PROGRESS,
            automation_mode=AutomationMode.AUTO,
            started_at=self.executed_at,
            duration=self.duration,
        )
