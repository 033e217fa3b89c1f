"""Step identifiers, definitions and outputs.

Steps are the atomic units of the fabrika workflow. Each step has a
stable identifier (also its on-disk file stem), a static definition
from the registry and, once executed, a ``StepOutput``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StepId(str, Enum):
    """Workflow step identifiers in workflow order."""

    BRAINSTORMING = "step-01-brainstorming"
    RESEARCH = "step-02-research"
    PRODUCT_BRIEF = "step-03-product-brief"
    PRD = "step-04-prd"
    UX_DESIGN = "step-05-ux-design"
    ARCHITECTURE = "step-06-architecture"
    EPICS_STORIES = "step-07-epics-stories"
    SPRINT_PLANNING = "step-08-sprint-planning"
    TECH_SPEC = "step-09-tech-spec"
    DEVELOPMENT = "step-10-development"
    CODE_REVIEW = "step-11-code-review"
    QA_TESTING = "step-12-qa-testing"

    @property
    def number(self) -> int:
        """1-based position (step-03-... -> 3)."""
        return int(self.value.split("-")[1])

    @property
    def slug(self) -> str:
        """Identifier without the number prefix (step-03-product-brief -> product-brief)."""
        return self.value.split("-", 2)[2]

    @classmethod
    def parse(cls, value: str) -> "StepId":
        """Resolve a full id, a bare number ("3") or a slug ("product-brief").

        Raises:
            ValueError: If no step matches
        """
        text = value.strip().lower()
        for step in cls:
            if text in (step.value, step.slug) or (text.isdigit() and int(text) == step.number):
                return step
        raise ValueError(f"Unknown step: {value}")


class StepCategory(str, Enum):
    """Step category grouping."""

    BUSINESS = "business"
    DESIGN = "design"
    TECHNICAL = "technical"


class StepDefinition(BaseModel):
    """Immutable descriptor of one workflow step.

    Attributes:
        id: Step identifier.
        name: Turkish display name.
        description: Turkish one-line description.
        category: Category grouping.
        template_path: Prompt template reference, relative to the project data dir.
        required_inputs: Steps that must be finished before this one can run.
    """

    model_config = ConfigDict(frozen=True)

    id: StepId
    name: str = Field(min_length=1)
    description: str = ""
    category: StepCategory
    template_path: str = Field(min_length=1)
    required_inputs: tuple[StepId, ...] = ()

    @property
    def number(self) -> int:
        """1-based position in the workflow."""
        return self.id.number


class StepOutput(BaseModel):
    """Textual artifact produced by a step.

    Created either by the step executor or from a manual output file and
    never modified afterwards.

    Attributes:
        content: Full text of the artifact.
        files: Paths of files backing the artifact, in order.
        metadata: Free-form metadata (source, provider, validation result...).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    content: str
    files: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
