"""CLI integration tests for fabrika."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from fabrika.cli import app
from fabrika.constants import (
    EXIT_CHECKPOINT_IO,
    EXIT_LOCKED,
    EXIT_NOT_INITIALIZED,
    EXIT_PROVIDER_UNAVAILABLE,
    EXIT_STEP_BLOCKED,
    EXIT_STEP_FAILED,
)
from fabrika.core import CheckpointStore
from fabrika.errors import ProviderError
from fabrika.models import CheckpointError, Lock, StepCheckpoint, StepId, StepStatus

WIDE = {"COLUMNS": "200"}


def invoke(runner: CliRunner, project: Path, *args: str) -> Any:
    return runner.invoke(app, ["--no-color", "-C", str(project), *args], env=WIDE)


def invoke_json(runner: CliRunner, project: Path, *args: str) -> Any:
    return runner.invoke(app, ["-q", "--json", "-C", str(project), *args], env=WIDE)


def store_for(project: Path) -> CheckpointStore:
    return CheckpointStore(project / ".fabrika" / "checkpoints")


def patched_provider(provider: Any) -> Any:
    return patch("fabrika.core.orchestrator.create_provider", return_value=provider)


class TestVersionAndHelp:
    """Tests for global flags."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "fabrika 0.4.0" in result.stdout

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"], env=WIDE)
        assert result.exit_code == 0
        for command in ("init", "steps", "status", "run", "skip", "reset", "fresh", "export"):
            assert command in result.stdout


class TestInit:
    """Tests for fabrika init."""

    def test_creates_layout(self, runner: CliRunner, tmp_path: Path) -> None:
        provider = MagicMock()
        provider.name = "claude"
        provider.validate_key.return_value = True
        with patch("fabrika.commands.init.create_provider", return_value=provider):
            result = invoke(runner, tmp_path, "init")

        assert result.exit_code == 0, result.output
        assert "initialized successfully" in result.output
        fabrika_dir = tmp_path / ".fabrika"
        assert (fabrika_dir / "config.toml").exists()
        for name in ("checkpoints", "outputs", "templates", "logs"):
            assert (fabrika_dir / name).is_dir()
        assert len(store_for(tmp_path).load_all()) == 12

    def test_provider_unavailable(self, runner: CliRunner, tmp_path: Path) -> None:
        provider = MagicMock()
        provider.name = "claude"
        provider.validate_key.return_value = False
        with patch("fabrika.commands.init.create_provider", return_value=provider):
            result = invoke(runner, tmp_path, "init")

        assert result.exit_code == EXIT_PROVIDER_UNAVAILABLE
        assert (tmp_path / ".fabrika" / "config.toml").exists()

    def test_existing_config_kept(self, runner: CliRunner, initialized_project: Path) -> None:
        config = initialized_project / ".fabrika" / "config.toml"
        before = config.read_text()
        provider = MagicMock()
        provider.name = "claude"
        provider.validate_key.return_value = True
        with patch("fabrika.commands.init.create_provider", return_value=provider):
            result = invoke(runner, initialized_project, "init")

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert config.read_text() == before


class TestNotInitialized:
    """Commands on a directory without .fabrika."""

    def test_status(self, runner: CliRunner, tmp_path: Path) -> None:
        result = invoke(runner, tmp_path, "status")
        assert result.exit_code == EXIT_NOT_INITIALIZED
        assert "fabrika init" in result.output

    def test_run_json(self, runner: CliRunner, tmp_path: Path) -> None:
        result = invoke_json(runner, tmp_path, "run")
        assert result.exit_code == EXIT_NOT_INITIALIZED
        data = json.loads(result.stdout)
        assert data["code"] == "E999"
        assert data["retryable"] is False


class TestSteps:
    """Tests for fabrika steps."""

    def test_table(self, runner: CliRunner, tmp_path: Path) -> None:
        result = invoke(runner, tmp_path, "steps")
        assert result.exit_code == 0
        assert "step-01-brainstorming" in result.output
        assert "Fikir Geliştirme" in result.output

    def test_json(self, runner: CliRunner, tmp_path: Path) -> None:
        result = invoke_json(runner, tmp_path, "steps")
        assert result.exit_code == 0
        steps = json.loads(result.stdout)["steps"]
        assert len(steps) == 12
        assert steps[2]["id"] == "step-03-product-brief"
        assert steps[2]["required_inputs"] == ["step-01-brainstorming", "step-02-research"]
        assert steps[2]["required_sections"] == ["Ürün Özeti", "Hedef Kitle"]


class TestStatus:
    """Tests for fabrika status."""

    def test_fresh_project(self, runner: CliRunner, initialized_project: Path) -> None:
        result = invoke(runner, initialized_project, "status")
        assert result.exit_code == 0
        assert "Progress:" in result.output
        assert "0/12" in result.output

    def test_json_with_failure(self, runner: CliRunner, initialized_project: Path) -> None:
        store_for(initialized_project).save(
            StepId.BRAINSTORMING,
            StepCheckpoint(
                step_id=StepId.BRAINSTORMING,
                status=StepStatus.IN_PROGRESS,
                error=CheckpointError(code="E001", message="zaman aşımı", retry_count=2),
            ),
        )
        result = invoke_json(runner, initialized_project, "status")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["project"] == "test-project"
        assert data["steps"][0]["status"] == "in-progress"
        assert data["steps"][0]["retry_count"] == 2
        assert data["steps"][1]["status"] == "pending"
        assert data["progress"]["current"] == "step-01-brainstorming"
        assert data["can_resume"] is True

    def test_corrupt_checkpoint(self, runner: CliRunner, initialized_project: Path) -> None:
        path = initialized_project / ".fabrika" / "checkpoints" / "step-01-brainstorming.json"
        path.write_text("{")
        result = invoke(runner, initialized_project, "status")
        assert result.exit_code == EXIT_CHECKPOINT_IO
        assert "Checkpoint okunamadı" in result.output


class TestRun:
    """Tests for fabrika run."""

    def test_full_run(
        self, runner: CliRunner, initialized_project: Path, provider: Any
    ) -> None:
        with patched_provider(provider):
            result = invoke(runner, initialized_project, "run")

        assert result.exit_code == 0, result.output
        assert "Workflow complete!" in result.output
        assert provider.calls == 12
        assert list((initialized_project / ".fabrika" / "logs").glob("run-*.log"))
        assert not (initialized_project / ".fabrika" / "active.lock").exists()

    def test_run_json(self, runner: CliRunner, initialized_project: Path, provider: Any) -> None:
        with patched_provider(provider):
            result = invoke_json(runner, initialized_project, "run")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["finished"] is True
        assert [r["outcome"] for r in data["results"]] == ["completed"] * 12

    def test_single_step(self, runner: CliRunner, initialized_project: Path, provider: Any) -> None:
        with patched_provider(provider):
            result = invoke(runner, initialized_project, "run", "--step", "1")

        assert result.exit_code == 0
        assert provider.calls == 1
        checkpoint = store_for(initialized_project).load(StepId.BRAINSTORMING)
        assert checkpoint is not None and checkpoint.status == StepStatus.COMPLETED

    def test_step_waiting_for_inputs(
        self, runner: CliRunner, initialized_project: Path, provider: Any
    ) -> None:
        with patched_provider(provider):
            result = invoke(runner, initialized_project, "run", "-s", "prd")

        assert result.exit_code == EXIT_STEP_BLOCKED
        assert "waiting for: step-03-product-brief" in result.output
        assert provider.calls == 0

    def test_failed_step(
        self, runner: CliRunner, initialized_project: Path, make_provider: Any
    ) -> None:
        provider = make_provider([ProviderError.network("refused")])
        with patched_provider(provider):
            result = invoke_json(runner, initialized_project, "run")

        assert result.exit_code == EXIT_STEP_FAILED
        data = json.loads(result.stdout)
        last = data["results"][-1]
        assert last["step"] == "step-01-brainstorming"
        assert last["outcome"] == "failed"
        assert last["retryable"] is False
        assert last["error"]["code"] == "E004"
        assert last["error"]["retryCount"] == 1

    def test_blocked_step(
        self, runner: CliRunner, initialized_project: Path, provider: Any
    ) -> None:
        store_for(initialized_project).save(
            StepId.BRAINSTORMING,
            StepCheckpoint(
                step_id=StepId.BRAINSTORMING,
                status=StepStatus.IN_PROGRESS,
                error=CheckpointError(code="E001", message="zaman aşımı", retry_count=3),
            ),
        )
        with patched_provider(provider):
            result = invoke(runner, initialized_project, "run", "--step", "brainstorming")

        assert result.exit_code == EXIT_STEP_BLOCKED
        assert "retry limit reached" in result.output
        assert provider.calls == 0

    def test_manual_output_used(
        self, runner: CliRunner, initialized_project: Path, provider: Any
    ) -> None:
        outputs = initialized_project / ".fabrika" / "outputs"
        (outputs / "step-01-brainstorming.md").write_text("# Fikirler\n- elle yazılmış")
        with patched_provider(provider):
            result = invoke(runner, initialized_project, "run", "--step", "1")

        assert result.exit_code == 0
        assert "(manual)" in result.output
        assert provider.calls == 0

    def test_unknown_step(self, runner: CliRunner, initialized_project: Path) -> None:
        result = invoke(runner, initialized_project, "run", "--step", "99")
        assert result.exit_code == 1
        assert "Unknown step: 99" in result.output

    def test_locked_project(
        self, runner: CliRunner, initialized_project: Path, provider: Any
    ) -> None:
        lock = Lock(pid=99999, project=str(initialized_project), command="run")
        (initialized_project / ".fabrika" / "active.lock").write_text(lock.model_dump_json())
        with (
            patched_provider(provider),
            patch("fabrika.core.lock_manager._is_pid_running", return_value=True),
        ):
            result = invoke(runner, initialized_project, "run")

        assert result.exit_code == EXIT_LOCKED
        assert provider.calls == 0


class TestOperatorCommands:
    """Tests for skip, reset and fresh."""

    def test_skip(self, runner: CliRunner, initialized_project: Path) -> None:
        result = invoke(runner, initialized_project, "skip", "ux-design")
        assert result.exit_code == 0
        assert "Skipped step-05-ux-design" in result.output
        checkpoint = store_for(initialized_project).load(StepId.UX_DESIGN)
        assert checkpoint is not None and checkpoint.status == StepStatus.SKIPPED

    def test_skip_completed_rejected(
        self, runner: CliRunner, initialized_project: Path, provider: Any
    ) -> None:
        with patched_provider(provider):
            invoke(runner, initialized_project, "run", "--step", "1")
        result = invoke(runner, initialized_project, "skip", "1")
        assert result.exit_code == 1
        assert "Adım atlanamaz" in result.output

    def test_reset_with_yes(
        self, runner: CliRunner, initialized_project: Path, provider: Any
    ) -> None:
        with patched_provider(provider):
            invoke(runner, initialized_project, "run", "--step", "1")
        result = invoke(runner, initialized_project, "reset", "1", "--yes")

        assert result.exit_code == 0
        assert store_for(initialized_project).load(StepId.BRAINSTORMING) == StepCheckpoint(
            step_id=StepId.BRAINSTORMING
        )

    def test_reset_declined(self, runner: CliRunner, initialized_project: Path) -> None:
        store_for(initialized_project).save(
            StepId.BRAINSTORMING,
            StepCheckpoint(step_id=StepId.BRAINSTORMING, status=StepStatus.SKIPPED),
        )
        result = runner.invoke(
            app, ["--no-color", "-C", str(initialized_project), "reset", "1"], input="n\n"
        )
        assert result.exit_code == 1
        checkpoint = store_for(initialized_project).load(StepId.BRAINSTORMING)
        assert checkpoint is not None and checkpoint.status == StepStatus.SKIPPED

    def test_fresh(self, runner: CliRunner, initialized_project: Path, provider: Any) -> None:
        with patched_provider(provider):
            invoke(runner, initialized_project, "run", "--step", "1")
        result = invoke_json(runner, initialized_project, "fresh", "--yes")

        assert result.exit_code == 0
        assert json.loads(result.stdout)["removed"] == 12
        statuses = {cp.status for cp in store_for(initialized_project).load_all().values()}
        assert statuses == {StepStatus.PENDING}


class TestOutputs:
    """Tests for manual and export."""

    def test_manual_listing(self, runner: CliRunner, initialized_project: Path) -> None:
        outputs = initialized_project / ".fabrika" / "outputs"
        (outputs / "step-02-research.md").write_text("# Pazar Analizi\nveri")
        (outputs / "step-04-prd.md").write_text("")
        result = invoke_json(runner, initialized_project, "manual")

        assert result.exit_code == 0
        manual = json.loads(result.stdout)["manual"]
        assert [m["step"] for m in manual] == ["step-02-research", "step-04-prd"]
        assert [m["empty"] for m in manual] == [False, True]

    def test_manual_none(self, runner: CliRunner, initialized_project: Path) -> None:
        result = invoke(runner, initialized_project, "manual")
        assert result.exit_code == 0
        assert "No manual outputs" in result.output

    def test_export(
        self,
        runner: CliRunner,
        initialized_project: Path,
        provider: Any,
        sample_output: str,
        tmp_path: Path,
    ) -> None:
        with patched_provider(provider):
            invoke(runner, initialized_project, "run", "--step", "1")
        destination = tmp_path / "export"
        result = invoke(runner, initialized_project, "export", str(destination))

        assert result.exit_code == 0
        exported = destination / "step-01-brainstorming.md"
        assert exported.read_text(encoding="utf-8") == sample_output
        assert [p.name for p in destination.iterdir()] == ["step-01-brainstorming.md"]

    def test_export_nothing(
        self, runner: CliRunner, initialized_project: Path, tmp_path: Path
    ) -> None:
        result = invoke(runner, initialized_project, "export", str(tmp_path / "out"))
        assert result.exit_code == 1
        assert "No completed steps" in result.output
