"""Tests for fabrika data models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from fabrika.models import (
    CheckpointError,
    LegacyStepCheckpoint,
    StepCheckpoint,
    StepId,
    StepOutput,
    StepStatus,
)


class TestStepId:
    """Tests for StepId."""

    def test_number_and_slug(self) -> None:
        assert StepId.PRODUCT_BRIEF.number == 3
        assert StepId.PRODUCT_BRIEF.slug == "product-brief"
        assert StepId.QA_TESTING.number == 12

    @pytest.mark.parametrize(
        "value", ["step-03-product-brief", "3", "03", "product-brief", " Product-Brief "]
    )
    def test_parse(self, value: str) -> None:
        assert StepId.parse(value) == StepId.PRODUCT_BRIEF

    @pytest.mark.parametrize("value", ["0", "13", "brief", ""])
    def test_parse_unknown(self, value: str) -> None:
        with pytest.raises(ValueError, match="Unknown step"):
            StepId.parse(value)


class TestStepCheckpoint:
    """Tests for checkpoint status invariants."""

    def test_pending_defaults(self) -> None:
        checkpoint = StepCheckpoint(step_id=StepId.PRD)
        assert checkpoint.status == StepStatus.PENDING
        assert checkpoint.retry_count == 0
        assert not checkpoint.is_finished

    def test_completed_requires_output(self) -> None:
        with pytest.raises(ValidationError, match="requires output"):
            StepCheckpoint(step_id=StepId.PRD, status=StepStatus.COMPLETED)

    def test_output_only_when_completed(self) -> None:
        with pytest.raises(ValidationError):
            StepCheckpoint(
                step_id=StepId.PRD,
                status=StepStatus.IN_PROGRESS,
                output=StepOutput(content="x"),
            )

    def test_error_only_when_in_progress(self) -> None:
        with pytest.raises(ValidationError):
            StepCheckpoint(
                step_id=StepId.PRD,
                status=StepStatus.SKIPPED,
                error=CheckpointError(code="E001", message="x"),
            )

    def test_negative_retry_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CheckpointError(code="E001", message="x", retry_count=-1)

    def test_finished_states(self) -> None:
        skipped = StepCheckpoint(step_id=StepId.PRD, status=StepStatus.SKIPPED)
        assert skipped.is_finished

    def test_camel_case_aliases(self) -> None:
        checkpoint = StepCheckpoint.model_validate(
            {"schemaVersion": 2, "stepId": "step-04-prd", "automationMode": "manual"}
        )
        assert checkpoint.automation_mode.value == "manual"

    def test_other_schema_version_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StepCheckpoint.model_validate({"schemaVersion": 3, "stepId": "step-04-prd"})


class TestLegacyMigration:
    """Tests for LegacyStepCheckpoint.migrate."""

    executed_at = datetime(2025, 11, 3, 8, 0, tzinfo=UTC)

    def test_success(self) -> None:
        legacy = LegacyStepCheckpoint(
            step_id=StepId.RESEARCH,
            executed_at=self.executed_at,
            duration=900,
            success=True,
            output=StepOutput(content="c"),
        )
        migrated = legacy.migrate()
        assert migrated.status == StepStatus.COMPLETED
        assert migrated.completed_at == self.executed_at
        assert migrated.duration == 900
        assert migrated.error is None

    def test_failure(self) -> None:
        legacy = LegacyStepCheckpoint(
            step_id=StepId.RESEARCH,
            executed_at=self.executed_at,
            success=False,
            output=StepOutput(content="partial"),
        )
        migrated = legacy.migrate()
        assert migrated.status == StepStatus.IN_PROGRESS
        assert migrated.output is None
        assert migrated.started_at == self.executed_at
