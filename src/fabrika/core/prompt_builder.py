"""Prompt building for workflow steps.

Templates are opaque text with ``{{...}}`` placeholders. A project can
override any step's prompt by placing ``<stepId>.md`` in its templates
directory; otherwise a built-in prompt is used.
"""

import re
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..errors import TemplateError
from ..models import StepDefinition, StepId, StepOutput
from .registry import STEP_NAMES

PLACEHOLDER = re.compile(
    r"\{\{(?:(projectIdea)|(stepName)|(allPreviousOutputs)|previousOutput\.([^}]+))\}\}"
)

NO_PREVIOUS_OUTPUTS = "(Henüz önceki adım çıktısı yok)"
OUTPUT_SEPARATOR = "\n\n---\n\n"

DEFAULT_TEMPLATE = """\
# {{stepName}}

Proje fikri: {{projectIdea}}

Görev: {description}

## Önceki Adımların Çıktıları

{{allPreviousOutputs}}

## Talimatlar

Yanıtını Markdown formatında yaz. Her bölüm bir başlık ile başlamalı.
{sections}"""


def default_template(step: StepDefinition, required_sections: Sequence[str] = ()) -> str:
    """Built-in prompt for a step, listing the headings its output must have."""
    if required_sections:
        lines = "\n".join(f"- {title}" for title in required_sections)
        sections = f"Şu başlıkları mutlaka içer:\n{lines}\n"
    else:
        sections = ""
    return DEFAULT_TEMPLATE.replace("{description}", step.description).replace(
        "{sections}", sections
    )


class TemplateLoader:
    """Resolve prompt templates from a project's templates directory."""

    def __init__(
        self,
        templates_dir: Path,
        required_sections: Mapping[StepId, Sequence[str]] | None = None,
    ) -> None:
        self.templates_dir = templates_dir
        self.required_sections = required_sections or {}

    def template_path(self, step_id: StepId) -> Path:
        return self.templates_dir / f"{StepId(step_id).value}.md"

    def load(self, step: StepDefinition) -> str:
        """Return the step's template text.

        Raises:
            TemplateError: If an override file exists but cannot be read
        """
        path = self.template_path(step.id)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return default_template(step, self.required_sections.get(step.id, ()))
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateError(
                f"Failed to read template {path}: {e}", f"Şablon okunamadı: {path}"
            ) from e


def format_previous_outputs(
    outputs: Mapping[StepId, StepOutput], step_names: Mapping[StepId, str] = STEP_NAMES
) -> str:
    """Render prior outputs as ``## <name>`` blocks separated by rules."""
    if not outputs:
        return NO_PREVIOUS_OUTPUTS
    return OUTPUT_SEPARATOR.join(
        f"## {step_names.get(step_id, step_id.value)}\n\n{output.content}"
        for step_id, output in outputs.items()
    )


def fill_template(
    template: str,
    step: StepDefinition,
    project_idea: str,
    previous_outputs: Mapping[StepId, StepOutput],
    step_names: Mapping[StepId, str] | None = None,
) -> str:
    """Substitute context values into a template.

    Args:
        template: Template text
        step: Step being prompted for
        project_idea: Project idea from config or the command line
        previous_outputs: Outputs of completed steps, in workflow order
        step_names: Display names used as headings for prior outputs

    Returns:
        The filled prompt. ``{{previousOutput.<id>}}`` for a step without
        output becomes an empty string.
    """
    names = step_names or STEP_NAMES
    by_value = {step_id.value: output for step_id, output in previous_outputs.items()}

    all_outputs = format_previous_outputs(previous_outputs, names)

    # One pass: inserted text is never scanned for placeholders again
    def replace(match: re.Match[str]) -> str:
        idea, step_name, everything, output_id = match.groups()
        if idea:
            return project_idea
        if step_name:
            return step.name
        if everything:
            return all_outputs
        output = by_value.get(output_id)
        return output.content if output is not None else ""

    return PLACEHOLDER.sub(replace, template)
