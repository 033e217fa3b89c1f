"""Workflow orchestration: the per-step state machine and run loop.

Each step moves through::

    pending -> in-progress -> completed
                   |  ^
                   v  |
        in-progress + error (retry-eligible)

``skipped`` is reached only by an explicit operator decision. A failed
step stays in-progress with its error and retry count; once the count
exceeds ``max_retries`` the step is reported as blocked until an
operator resets it, supplies a manual output, or forces a re-run.
"""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from ..config import FabrikaConfig, WorkflowConfig
from ..constants import FABRIKA_DIR_NAME
from ..errors import (
    CheckpointReadFailed,
    CheckpointWriteFailed,
    FabrikaError,
    InvalidTransition,
    OutputReadFailed,
)
from ..models import (
    AutomationMode,
    CheckpointError,
    StepCheckpoint,
    StepDefinition,
    StepId,
    StepOutput,
    StepStatus,
)
from ..services.provider import (
    CompletionOptions,
    CompletionProvider,
    create_provider,
    options_from_config,
)
from .checkpoint_store import CheckpointStore
from .manual_detector import ManualStepDetector
from .prompt_builder import TemplateLoader
from .registry import REQUIRED_SECTIONS, StepRegistry
from .step_executor import ExecutionContext, StepExecutor

RESUME_MESSAGES = {
    "previous_work_found": "Önceki çalışma yarıda kaldı",
    "step_info": "Adım {current}/{total} - {step_name}",
    "resuming": "Kaldığı yerden devam ediliyor...",
    "starting_fresh": "Yeniden başlatılıyor...",
    "resume_success": "{step_name} adımından devam ediliyor",
    "fresh_success": "Workflow baştan başlatıldı",
    "no_checkpoint": "Devam edilecek checkpoint bulunamadı",
    "checkpoint_cleared": "Önceki ilerleme temizlendi",
    "error_at_step": "Hata: {error_message}",
    "retry_info": "{retry_count} deneme sonrası başarısız oldu",
}


def _now() -> datetime:
    return datetime.now(UTC)


def _duration_ms(started_at: datetime, finished_at: datetime) -> int:
    return max(int((finished_at - started_at).total_seconds() * 1000), 0)


class StepOutcome(str, Enum):
    """What a single pass of the per-step algorithm did."""

    ALREADY_COMPLETED = "already-completed"
    SKIPPED = "skipped"
    COMPLETED = "completed"
    COMPLETED_MANUAL = "completed-manual"
    NOT_RUNNABLE = "not-runnable"
    FAILED = "failed"
    BLOCKED = "blocked"


SUCCESS_OUTCOMES = frozenset(
    {
        StepOutcome.ALREADY_COMPLETED,
        StepOutcome.SKIPPED,
        StepOutcome.COMPLETED,
        StepOutcome.COMPLETED_MANUAL,
    }
)


@dataclass(frozen=True)
class StepRunResult:
    """Result of running one step.

    Attributes:
        step_id: Step that was run.
        outcome: What happened.
        checkpoint: Checkpoint as persisted after the pass (None if the
            step has no record).
        error: Failure recorded on the checkpoint (failed and blocked).
        retryable: Whether re-running the step may succeed without
            operator action.
        missing_inputs: Unfinished prerequisites (not-runnable).
    """

    step_id: StepId
    outcome: StepOutcome
    checkpoint: StepCheckpoint | None = None
    error: CheckpointError | None = None
    retryable: bool = False
    missing_inputs: tuple[StepId, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.outcome in SUCCESS_OUTCOMES


@dataclass
class WorkflowResult:
    """Results of a workflow run, one entry per attempt, in order."""

    results: list[StepRunResult] = field(default_factory=list)
    total_steps: int = 0

    @property
    def last(self) -> StepRunResult | None:
        return self.results[-1] if self.results else None

    @property
    def finished(self) -> bool:
        """True when every step ended completed or skipped."""
        finished = {r.step_id for r in self.results if r.succeeded}
        return len(finished) == self.total_steps

    @property
    def stopped_at(self) -> StepRunResult | None:
        """The result that halted the run, if any."""
        last = self.last
        if last is None or last.succeeded:
            return None
        return last


@dataclass(frozen=True)
class WorkflowProgress:
    """Step counts by status."""

    total: int
    completed: int
    skipped: int
    in_progress: int
    pending: int
    current: StepId | None

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return round((self.completed + self.skipped) * 100 / self.total)


@dataclass(frozen=True)
class ResumeInfo:
    """Where an interrupted workflow would continue."""

    can_resume: bool
    total_steps: int
    completed_steps: int = 0
    current_step: StepId | None = None
    current_step_name: str | None = None
    step_number: int | None = None
    error_message: str | None = None
    retry_count: int = 0


def format_resume_info(info: ResumeInfo) -> str:
    """Render resume information as operator-facing text."""
    if not info.can_resume:
        return RESUME_MESSAGES["no_checkpoint"]

    lines = [RESUME_MESSAGES["previous_work_found"]]
    if info.step_number and info.current_step_name:
        lines.append(
            RESUME_MESSAGES["step_info"].format(
                current=info.step_number,
                total=info.total_steps,
                step_name=info.current_step_name,
            )
        )
    if info.error_message:
        lines.append(RESUME_MESSAGES["error_at_step"].format(error_message=info.error_message))
    if info.retry_count > 0:
        lines.append(RESUME_MESSAGES["retry_info"].format(retry_count=info.retry_count))
    return "\n".join(lines)


class WorkflowOrchestrator:
    """Sequence steps through detection, execution and checkpointing.

    Components are injected and live for one workflow run. Checkpoint
    read and write failures propagate to the caller; provider failures and
    unreadable manual outputs are recorded on the step's checkpoint.
    """

    def __init__(
        self,
        registry: StepRegistry,
        store: CheckpointStore,
        detector: ManualStepDetector,
        executor: StepExecutor,
        provider: CompletionProvider,
        project_path: Path,
        project_idea: str = "",
        options: CompletionOptions | None = None,
        workflow: WorkflowConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.detector = detector
        self.executor = executor
        self.provider = provider
        self.project_path = project_path
        self.project_idea = project_idea
        self.options = options
        self.workflow = workflow or WorkflowConfig()
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def checkpoints(self) -> dict[StepId, StepCheckpoint]:
        """All existing checkpoints in workflow order."""
        return self.store.load_all([step.id for step in self.registry])

    def status_of(self, step_id: StepId) -> StepStatus:
        checkpoint = self.store.load(step_id)
        return checkpoint.status if checkpoint else StepStatus.PENDING

    def missing_inputs(self, step: StepDefinition) -> tuple[StepId, ...]:
        """Prerequisites of ``step`` that are neither completed nor skipped."""
        missing = []
        for dependency in step.required_inputs:
            checkpoint = self.store.load(dependency)
            if checkpoint is None or not checkpoint.is_finished:
                missing.append(dependency)
        return tuple(missing)

    def completed_outputs(self, before: StepId | None = None) -> dict[StepId, StepOutput]:
        """Outputs of completed steps in workflow order.

        Args:
            before: Only include steps that come before this one
        """
        steps: Sequence[StepId] = (
            self.registry.steps_before(before)
            if before is not None
            else [step.id for step in self.registry]
        )
        outputs: dict[StepId, StepOutput] = {}
        for step_id in steps:
            checkpoint = self.store.load(step_id)
            if checkpoint and checkpoint.status == StepStatus.COMPLETED and checkpoint.output:
                outputs[step_id] = checkpoint.output
        return outputs

    def progress(self) -> WorkflowProgress:
        checkpoints = self.checkpoints()
        counts = dict.fromkeys(StepStatus, 0)
        current: StepId | None = None
        for step in self.registry:
            checkpoint = checkpoints.get(step.id)
            status = checkpoint.status if checkpoint else StepStatus.PENDING
            counts[status] += 1
            if current is None and status in (StepStatus.PENDING, StepStatus.IN_PROGRESS):
                current = step.id
        return WorkflowProgress(
            total=len(self.registry),
            completed=counts[StepStatus.COMPLETED],
            skipped=counts[StepStatus.SKIPPED],
            in_progress=counts[StepStatus.IN_PROGRESS],
            pending=counts[StepStatus.PENDING],
            current=current,
        )

    def resume_info(self) -> ResumeInfo:
        """Describe where a resumed run would pick up.

        A workflow is resumable when at least one step has moved past
        pending and at least one step is still unfinished.
        """
        checkpoints = self.checkpoints()
        total = len(self.registry)
        started = any(cp.status != StepStatus.PENDING for cp in checkpoints.values())
        finished = sum(1 for cp in checkpoints.values() if cp.is_finished)

        current = next(
            (
                step
                for step in self.registry
                if step.id not in checkpoints or not checkpoints[step.id].is_finished
            ),
            None,
        )
        if not started or current is None:
            return ResumeInfo(can_resume=False, total_steps=total, completed_steps=finished)

        checkpoint = checkpoints.get(current.id)
        error = checkpoint.error if checkpoint else None
        return ResumeInfo(
            can_resume=True,
            total_steps=total,
            completed_steps=finished,
            current_step=current.id,
            current_step_name=current.name,
            step_number=self.registry.index_of(current.id) + 1,
            error_message=error.message if error else None,
            retry_count=error.retry_count if error else 0,
        )

    def initialize(self) -> list[StepId]:
        """Create a pending checkpoint for every step that has none.

        Returns:
            Steps that were initialized
        """
        created = []
        for step in self.registry:
            if not self.store.exists(step.id):
                self.store.save(step.id, StepCheckpoint(step_id=step.id))
                created.append(step.id)
        if created:
            self.logger.debug("Initialized %d checkpoint(s)", len(created))
        return created

    def skip_step(self, step_id: StepId) -> StepCheckpoint:
        """Mark a pending or in-progress step as skipped.

        Raises:
            InvalidTransition: If the step is already completed or skipped
        """
        step_id = StepId(step_id)
        checkpoint = self.store.load(step_id)
        if checkpoint is not None and checkpoint.is_finished:
            raise InvalidTransition(
                f"Cannot skip {step_id.value}: already {checkpoint.status.value}",
                f"Adım atlanamaz, durumu: {checkpoint.status.value}",
            )
        now = _now()
        skipped = StepCheckpoint(
            step_id=step_id,
            status=StepStatus.SKIPPED,
            automation_mode=checkpoint.automation_mode if checkpoint else AutomationMode.AUTO,
            started_at=checkpoint.started_at if checkpoint else None,
            completed_at=now,
        )
        self.store.save(step_id, skipped)
        self.logger.info("Skipped %s", step_id.value)
        return skipped

    def reset_step(self, step_id: StepId) -> StepCheckpoint:
        """Replace a step's checkpoint with a fresh pending record."""
        step_id = StepId(step_id)
        pending = StepCheckpoint(step_id=step_id)
        self.store.save(step_id, pending)
        self.logger.info("Reset %s", step_id.value)
        return pending

    def start_fresh(self) -> int:
        """Discard all progress and re-initialize every step.

        Manual output files are left in place.

        Returns:
            Number of checkpoint files removed
        """
        removed = self.store.clear()
        self.initialize()
        self.logger.info("Cleared %d checkpoint(s)", removed)
        return removed

    def run_step(self, step_id: StepId, force: bool = False) -> StepRunResult:
        """Run the per-step algorithm once.

        Order: existing checkpoint, manual output, retry bound,
        prerequisites, then automated execution.

        Args:
            step_id: Step to run
            force: Re-run even if completed or skipped, ignoring the retry bound

        Returns:
            Outcome of this pass

        Raises:
            CheckpointReadFailed: If the step's checkpoint is unreadable
            CheckpointWriteFailed: If progress cannot be persisted
        """
        step = self.registry.get(step_id)
        checkpoint = self.store.load(step.id)

        if checkpoint is not None and not force:
            if checkpoint.status == StepStatus.COMPLETED:
                self.logger.debug("%s already completed", step.id.value)
                return StepRunResult(step.id, StepOutcome.ALREADY_COMPLETED, checkpoint)
            if checkpoint.status == StepStatus.SKIPPED:
                return StepRunResult(step.id, StepOutcome.SKIPPED, checkpoint)

        try:
            manual = self.detector.load_manual_output(step.id)
        except OutputReadFailed as e:
            return self._record_failure(step, checkpoint, e, AutomationMode.MANUAL)
        if manual is not None:
            self.logger.info("Using manual output for %s", step.id.value)
            return self._commit(step, manual, AutomationMode.MANUAL, _now())
        if self.detector.has_manual_output(step.id):
            self.logger.warning(
                "Manual output for %s is empty, running automatically", step.id.value
            )

        if (
            not force
            and checkpoint is not None
            and checkpoint.retry_count > self.workflow.max_retries
        ):
            self.logger.error(
                "%s failed %d times, retry limit reached", step.id.value, checkpoint.retry_count
            )
            return StepRunResult(step.id, StepOutcome.BLOCKED, checkpoint, error=checkpoint.error)

        missing = self.missing_inputs(step)
        if missing:
            self.logger.info(
                "%s waiting for: %s", step.id.value, ", ".join(s.value for s in missing)
            )
            return StepRunResult(
                step.id, StepOutcome.NOT_RUNNABLE, checkpoint, missing_inputs=missing
            )

        started_at = _now()
        prior_error = (
            checkpoint.error
            if checkpoint is not None and checkpoint.status == StepStatus.IN_PROGRESS
            else None
        )
        in_progress = StepCheckpoint(
            step_id=step.id,
            status=StepStatus.IN_PROGRESS,
            automation_mode=AutomationMode.AUTO,
            started_at=started_at,
            error=prior_error,
        )
        self.store.save(step.id, in_progress)

        context = ExecutionContext(
            project_path=self.project_path,
            project_idea=self.project_idea,
            provider=self.provider,
            previous_outputs=self.completed_outputs(before=step.id),
            options=self.options,
        )
        try:
            output = self.executor.execute(step, context)
        except (CheckpointReadFailed, CheckpointWriteFailed):
            raise
        except FabrikaError as e:
            # Provider and template failures are recorded on the step
            return self._record_failure(step, in_progress, e, AutomationMode.AUTO)
        return self._commit(step, output, AutomationMode.AUTO, started_at)

    def run(
        self,
        force: bool = False,
        auto_retry: bool | None = None,
        on_step: Callable[[StepRunResult], None] | None = None,
    ) -> WorkflowResult:
        """Run steps in workflow order until one does not finish.

        Args:
            force: Re-run every step, including completed ones
            auto_retry: Retry retryable failures in-process after the
                configured delay (defaults to ``workflow.auto_retry``)
            on_step: Called with every step result, retries included

        Returns:
            All step results of this run
        """
        auto_retry = self.workflow.auto_retry if auto_retry is None else auto_retry
        self.initialize()
        result = WorkflowResult(total_steps=len(self.registry))

        for step in self.registry:
            step_result = self._record(result, self.run_step(step.id, force=force), on_step)
            while (
                auto_retry
                and step_result.outcome == StepOutcome.FAILED
                and step_result.retryable
            ):
                attempt = step_result.error.retry_count if step_result.error else 1
                delay = self.workflow.delay_for(attempt)
                self.logger.info(
                    "Retrying %s in %ss (attempt %d)", step.id.value, delay, attempt + 1
                )
                self.sleep(delay)
                step_result = self._record(result, self.run_step(step.id), on_step)
            if not step_result.succeeded:
                break

        return result

    def _record(
        self,
        result: WorkflowResult,
        step_result: StepRunResult,
        on_step: Callable[[StepRunResult], None] | None,
    ) -> StepRunResult:
        result.results.append(step_result)
        if on_step is not None:
            on_step(step_result)
        return step_result

    def _commit(
        self,
        step: StepDefinition,
        output: StepOutput,
        mode: AutomationMode,
        started_at: datetime,
    ) -> StepRunResult:
        completed_at = _now()
        completed = StepCheckpoint(
            step_id=step.id,
            status=StepStatus.COMPLETED,
            automation_mode=mode,
            started_at=started_at,
            completed_at=completed_at,
            duration=_duration_ms(started_at, completed_at),
            output=output,
        )
        self.store.save(step.id, completed)
        self.logger.info("Completed %s (%s)", step.id.value, mode.value)
        outcome = (
            StepOutcome.COMPLETED_MANUAL if mode == AutomationMode.MANUAL else StepOutcome.COMPLETED
        )
        return StepRunResult(step.id, outcome, completed)

    def _record_failure(
        self,
        step: StepDefinition,
        base: StepCheckpoint | None,
        error: FabrikaError,
        mode: AutomationMode,
    ) -> StepRunResult:
        failed_at = _now()
        started_at = base.started_at if base is not None and base.started_at else failed_at
        checkpoint_error = CheckpointError(
            code=error.code.value,
            message=error.user_message,
            retry_count=(base.retry_count if base is not None else 0) + 1,
        )
        failed = StepCheckpoint(
            step_id=step.id,
            status=StepStatus.IN_PROGRESS,
            automation_mode=mode,
            started_at=started_at,
            duration=_duration_ms(started_at, failed_at),
            error=checkpoint_error,
        )
        self.store.save(step.id, failed)

        exhausted = checkpoint_error.retry_count > self.workflow.max_retries
        self.logger.error(
            "%s failed [%s] (attempt %d): %s",
            step.id.value,
            checkpoint_error.code,
            checkpoint_error.retry_count,
            error,
        )
        return StepRunResult(
            step.id,
            StepOutcome.FAILED,
            failed,
            error=checkpoint_error,
            retryable=error.retryable and not exhausted,
        )


def create_orchestrator(
    project_path: Path,
    config: FabrikaConfig,
    provider: CompletionProvider | None = None,
    project_idea: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
    logger: logging.Logger | None = None,
) -> WorkflowOrchestrator:
    """Wire up an orchestrator for a project from its configuration.

    Args:
        project_path: Project root (``.fabrika`` lives inside it)
        config: Loaded configuration
        provider: Provider override (defaults to the configured one)
        project_idea: Idea override (defaults to ``project.idea``)
        sleep: Delay function used between automatic retries
        logger: Logger shared by all components
    """
    fabrika_dir = project_path / FABRIKA_DIR_NAME
    required_sections: Mapping[StepId, Sequence[str]] = {
        **REQUIRED_SECTIONS,
        **config.validation.required_sections,
    }
    templates = TemplateLoader(fabrika_dir / config.paths.templates, required_sections)
    return WorkflowOrchestrator(
        registry=StepRegistry(),
        store=CheckpointStore(fabrika_dir / config.paths.checkpoints, logger),
        detector=ManualStepDetector(fabrika_dir / config.paths.outputs, logger),
        executor=StepExecutor(templates, required_sections, logger),
        provider=provider or create_provider(config.provider),
        project_path=project_path,
        project_idea=config.project.idea if project_idea is None else project_idea,
        options=options_from_config(config.provider),
        workflow=config.workflow,
        sleep=sleep,
        logger=logger,
    )
