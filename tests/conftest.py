"""Shared test fixtures for fabrika tests."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fabrika.config import FabrikaConfig, WorkflowConfig
from fabrika.core import (
    CheckpointStore,
    ManualStepDetector,
    StepExecutor,
    StepRegistry,
    TemplateLoader,
    WorkflowOrchestrator,
)
from fabrika.core.registry import REQUIRED_SECTIONS
from fabrika.services import CompletionOptions, CompletionResponse

SAMPLE_OUTPUT = """# Çıktı

## Fikirler
- Akıllı alışveriş listesi
- Paylaşılan bütçe takibi

## Notlar
Bu çıktı test amaçlı üretilmiştir ve yeterince uzundur.
"""


class FakeProvider:
    """Completion provider returning scripted responses.

    Each entry in ``outcomes`` is either response text or an exception to
    raise; once exhausted, ``SAMPLE_OUTPUT`` is returned.
    """

    name = "fake"

    def __init__(self, outcomes: list[str | Exception] | None = None) -> None:
        self.outcomes = list(outcomes or [])
        self.prompts: list[str] = []
        self.options: list[CompletionOptions | None] = []

    def complete(
        self, prompt: str, options: CompletionOptions | None = None
    ) -> CompletionResponse:
        self.prompts.append(prompt)
        self.options.append(options)
        outcome = self.outcomes.pop(0) if self.outcomes else SAMPLE_OUTPUT
        if isinstance(outcome, Exception):
            raise outcome
        return CompletionResponse(content=outcome, provider="fake", model="fake-1")

    def stream(self, prompt: str, options: CompletionOptions | None = None) -> Iterator[str]:
        yield from self.complete(prompt, options).content.splitlines(keepends=True)

    def validate_key(self) -> bool:
        return True

    @property
    def calls(self) -> int:
        return len(self.prompts)


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def fabrika_dir(tmp_path: Path) -> Path:
    """Create temporary .fabrika directory."""
    d = tmp_path / ".fabrika"
    d.mkdir()
    return d


@pytest.fixture
def checkpoints_dir(fabrika_dir: Path) -> Path:
    return fabrika_dir / "checkpoints"


@pytest.fixture
def outputs_dir(fabrika_dir: Path) -> Path:
    d = fabrika_dir / "outputs"
    d.mkdir()
    return d


@pytest.fixture
def store(checkpoints_dir: Path) -> CheckpointStore:
    return CheckpointStore(checkpoints_dir)


@pytest.fixture
def detector(outputs_dir: Path) -> ManualStepDetector:
    return ManualStepDetector(outputs_dir)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_provider() -> type[FakeProvider]:
    """Provider class for tests that script their own outcomes."""
    return FakeProvider


@pytest.fixture
def sample_output() -> str:
    return SAMPLE_OUTPUT


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the orchestrator between retries."""
    return []


@pytest.fixture
def make_orchestrator(
    tmp_path: Path,
    fabrika_dir: Path,
    store: CheckpointStore,
    detector: ManualStepDetector,
    sleeps: list[float],
) -> Callable[..., WorkflowOrchestrator]:
    """Factory for orchestrators wired to the temporary project."""

    def factory(
        provider: FakeProvider,
        max_retries: int = 3,
        auto_retry: bool = False,
        project_idea: str = "Aile bütçe uygulaması",
    ) -> WorkflowOrchestrator:
        templates = TemplateLoader(fabrika_dir / "templates", REQUIRED_SECTIONS)
        return WorkflowOrchestrator(
            registry=StepRegistry(),
            store=store,
            detector=detector,
            executor=StepExecutor(templates, REQUIRED_SECTIONS),
            provider=provider,
            project_path=tmp_path,
            project_idea=project_idea,
            workflow=WorkflowConfig(
                max_retries=max_retries, retry_delays=[10, 30, 60], auto_retry=auto_retry
            ),
            sleep=sleeps.append,
        )

    return factory


@pytest.fixture
def initialized_project(tmp_path: Path) -> Path:
    """Create a project with .fabrika layout and a minimal config.

    Returns the project root.
    """
    fabrika_dir = tmp_path / ".fabrika"
    for name in ("checkpoints", "outputs", "templates", "logs"):
        (fabrika_dir / name).mkdir(parents=True)

    config = """[project]
name = "test-project"
idea = "Aile bütçe uygulaması"

[provider]
name = "claude"
exec = "echo"

[workflow]
max_retries = 2
retry_delays = [0]
"""
    (fabrika_dir / "config.toml").write_text(config)
    return tmp_path


@pytest.fixture
def default_config() -> FabrikaConfig:
    return FabrikaConfig()
