"""Core workflow engine for fabrika.

This package contains the step execution and checkpoint engine:
- registry: Step definitions and dependency order
- section_parser / validator: Structure checks on generated text
- checkpoint_store: Durable per-step checkpoint records
- manual_detector: Human-supplied step outputs
- prompt_builder: Prompt templates
- step_executor: Automated execution through a completion provider
- orchestrator: Per-step state machine and workflow run loop
- lock_manager: Single-writer project lock
"""

from .checkpoint_store import CheckpointStore, SaveOptions
from .lock_manager import acquire_lock, release_lock, update_heartbeat, workflow_lock
from .manual_detector import ManualStepDetector
from .orchestrator import (
    ResumeInfo,
    StepOutcome,
    StepRunResult,
    WorkflowOrchestrator,
    WorkflowProgress,
    WorkflowResult,
    create_orchestrator,
    format_resume_info,
)
from .prompt_builder import TemplateLoader, fill_template
from .registry import REQUIRED_SECTIONS, StepRegistry
from .section_parser import parse_sections
from .step_executor import ExecutionContext, StepExecutor
from .validator import validate

__all__ = [
    "REQUIRED_SECTIONS",
    "CheckpointStore",
    "ExecutionContext",
    "ManualStepDetector",
    "ResumeInfo",
    "SaveOptions",
    "StepExecutor",
    "StepOutcome",
    "StepRegistry",
    "StepRunResult",
    "TemplateLoader",
    "WorkflowOrchestrator",
    "WorkflowProgress",
    "WorkflowResult",
    "acquire_lock",
    "create_orchestrator",
    "fill_template",
    "format_resume_info",
    "parse_sections",
    "release_lock",
    "update_heartbeat",
    "validate",
    "workflow_lock",
]
