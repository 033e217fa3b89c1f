"""Pydantic data models for fabrika.

This package defines the data structures used throughout fabrika for:
- Step identifiers, definitions and outputs (StepId, StepDefinition, StepOutput)
- Per-step checkpoints and their legacy format (StepCheckpoint, LegacyStepCheckpoint)
- Parsed sections and validation results (Section, ValidationResult)
- Manual output detection (ManualStepResult)
- Lock records (Lock)

Example:
    >>> from fabrika.models import StepCheckpoint, StepId
    >>> cp = StepCheckpoint(step_id=StepId.RESEARCH)
    >>> cp.model_dump_json(by_alias=True)
"""

from .checkpoint import (
    AutomationMode,
    CheckpointError,
    LegacyStepCheckpoint,
    StepCheckpoint,
    StepStatus,
)
from .lock import Lock
from .manual import ManualStepResult
from .section import Section, ValidationResult
from .step import StepCategory, StepDefinition, StepId, StepOutput

__all__ = [
    "AutomationMode",
    "CheckpointError",
    "LegacyStepCheckpoint",
    "Lock",
    "ManualStepResult",
    "Section",
    "StepCategory",
    "StepCheckpoint",
    "StepDefinition",
    "StepId",
    "StepOutput",
    "StepStatus",
    "ValidationResult",
]
