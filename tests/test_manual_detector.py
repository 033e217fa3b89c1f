"""Tests for manual output detection."""

import os
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from fabrika.core.manual_detector import ManualStepDetector, to_step_output
from fabrika.errors import ErrorCode, OutputReadFailed
from fabrika.models import ManualStepResult, StepId


class TestDetection:
    """Tests for detect_manual_step."""

    def test_no_file(self, detector: ManualStepDetector) -> None:
        result = detector.detect_manual_step(StepId.PRD)
        assert result.detected is False
        assert result.content is None
        assert detector.has_manual_output(StepId.PRD) is False

    def test_missing_outputs_dir(self, tmp_path: Path) -> None:
        """A project without an outputs directory has no manual steps."""
        detector = ManualStepDetector(tmp_path / "nope")
        assert detector.detect_all_manual_steps() == {}

    def test_file_detected(self, detector: ManualStepDetector, outputs_dir: Path) -> None:
        path = outputs_dir / "step-04-prd.md"
        path.write_text("# Fonksiyonel Gereksinimler\n- giriş", encoding="utf-8")
        mtime = datetime(2026, 2, 1, 9, 30, tzinfo=UTC).timestamp()
        os.utime(path, (mtime, mtime))

        result = detector.detect_manual_step(StepId.PRD)

        assert result.detected is True
        assert result.file_path == path
        assert result.content == "# Fonksiyonel Gereksinimler\n- giriş"
        assert result.modified_at == datetime(2026, 2, 1, 9, 30, tzinfo=UTC)

    def test_directory_with_step_name_is_ignored(
        self, detector: ManualStepDetector, outputs_dir: Path
    ) -> None:
        (outputs_dir / "step-04-prd.md").mkdir()
        assert detector.has_manual_output(StepId.PRD) is False
        assert detector.detect_manual_step(StepId.PRD).detected is False

    def test_other_extensions_ignored(
        self, detector: ManualStepDetector, outputs_dir: Path
    ) -> None:
        (outputs_dir / "step-04-prd.txt").write_text("x")
        assert detector.has_manual_output(StepId.PRD) is False

    def test_vanished_after_check(self, detector: ManualStepDetector, outputs_dir: Path) -> None:
        """A file deleted between the existence check and the read is an error."""
        (outputs_dir / "step-04-prd.md").write_text("x")
        with (
            patch("builtins.open", side_effect=FileNotFoundError("gone")),
            pytest.raises(OutputReadFailed) as exc_info,
        ):
            detector.detect_manual_step(StepId.PRD)
        assert exc_info.value.code == ErrorCode.OUTPUT_READ_FAILED
        assert exc_info.value.retryable is True

    def test_invalid_utf8(self, detector: ManualStepDetector, outputs_dir: Path) -> None:
        (outputs_dir / "step-04-prd.md").write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(OutputReadFailed):
            detector.detect_manual_step(StepId.PRD)

    def test_detect_all_in_order(self, detector: ManualStepDetector, outputs_dir: Path) -> None:
        (outputs_dir / "step-06-architecture.md").write_text("# Mimari")
        (outputs_dir / "step-01-brainstorming.md").write_text("# Fikirler")
        found = detector.detect_all_manual_steps()
        assert list(found) == [StepId.BRAINSTORMING, StepId.ARCHITECTURE]


class TestLoadManualOutput:
    """Tests for converting manual files to step outputs."""

    def test_builds_output_with_metadata(
        self, detector: ManualStepDetector, outputs_dir: Path
    ) -> None:
        path = outputs_dir / "step-01-brainstorming.md"
        path.write_text("# Fikirler\n- a")

        output = detector.load_manual_output(StepId.BRAINSTORMING)

        assert output is not None
        assert output.content == "# Fikirler\n- a"
        assert output.files == [str(path)]
        assert output.metadata["source"] == "manual"
        assert "detectedAt" in output.metadata
        assert output.metadata["originalModifiedAt"] is not None

    def test_empty_file_gives_no_output(
        self, detector: ManualStepDetector, outputs_dir: Path
    ) -> None:
        (outputs_dir / "step-01-brainstorming.md").write_text("  \n\n")
        assert detector.has_manual_output(StepId.BRAINSTORMING) is True
        assert detector.load_manual_output(StepId.BRAINSTORMING) is None

    def test_absent_file_gives_no_output(self, detector: ManualStepDetector) -> None:
        assert detector.load_manual_output(StepId.BRAINSTORMING) is None

    def test_to_step_output_not_detected(self) -> None:
        assert to_step_output(ManualStepResult(detected=False)) is None
