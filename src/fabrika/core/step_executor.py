"""Automated execution of a single workflow step."""

import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..errors import ErrorCode, ProviderError
from ..models import StepDefinition, StepId, StepOutput, ValidationResult
from ..services.provider import CompletionOptions, CompletionProvider
from .prompt_builder import TemplateLoader, fill_template
from .section_parser import parse_sections
from .validator import validate


@dataclass
class ExecutionContext:
    """Everything one step execution needs besides its definition.

    Attributes:
        project_path: Project root directory.
        project_idea: Idea text substituted into prompts.
        previous_outputs: Outputs of completed steps, in workflow order.
        provider: Completion provider for this run.
        options: Request options passed to the provider.
    """

    project_path: Path
    project_idea: str
    provider: CompletionProvider
    previous_outputs: dict[StepId, StepOutput] = field(default_factory=dict)
    options: CompletionOptions | None = None


def validation_metadata(result: ValidationResult) -> dict[str, object]:
    """Serializable validation summary stored in output metadata.

    Errors are tagged with the validation failure code; they are advisory
    and never block completion.
    """
    data: dict[str, object] = result.model_dump(by_alias=True)
    if not result.is_valid:
        data["code"] = ErrorCode.VALIDATION_FAILED.value
    return data


class StepExecutor:
    """Build a prompt, call the provider and validate the result."""

    def __init__(
        self,
        templates: TemplateLoader,
        required_sections: Mapping[StepId, Sequence[str]] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.templates = templates
        self.required_sections = required_sections
        self.logger = logger or logging.getLogger(__name__)

    def build_prompt(self, step: StepDefinition, context: ExecutionContext) -> str:
        template = self.templates.load(step)
        return fill_template(template, step, context.project_idea, context.previous_outputs)

    def execute(self, step: StepDefinition, context: ExecutionContext) -> StepOutput:
        """Produce a step's output through the completion provider.

        Args:
            step: Step to execute
            context: Execution context

        Returns:
            Output with provider, timing and validation metadata

        Raises:
            ProviderError: Any provider failure, classified
            TemplateError: If a template override cannot be read
        """
        prompt = self.build_prompt(step, context)
        self.logger.info("Executing %s (%s)", step.id.value, step.name)

        start = time.monotonic()
        try:
            response = context.provider.complete(prompt, context.options)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError.from_exception(e) from e
        duration_ms = int((time.monotonic() - start) * 1000)

        sections = parse_sections(response.content)
        result = validate(sections, step.id, response.content, self.required_sections)
        for error in result.errors:
            self.logger.warning("%s: %s", step.id.value, error)
        for warning in result.warnings:
            self.logger.warning("%s: %s", step.id.value, warning)

        return StepOutput(
            content=response.content,
            metadata={
                "source": "auto",
                "provider": response.provider,
                "model": response.model,
                "createdAt": datetime.now(UTC).isoformat(),
                "durationMs": duration_ms,
                "sectionCount": len(sections),
                "validation": validation_metadata(result),
            },
        )
