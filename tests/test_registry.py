"""Tests for the step registry."""

import pytest

from fabrika.core.registry import (
    REQUIRED_SECTIONS,
    STEP_ORDER,
    StepRegistry,
    default_definitions,
    validate_definitions,
)
from fabrika.errors import RegistryError
from fabrika.models import StepCategory, StepId


class TestStepRegistry:
    """Tests for StepRegistry."""

    def test_twelve_steps_in_order(self) -> None:
        registry = StepRegistry()
        assert len(registry) == 12
        assert [step.id for step in registry] == list(STEP_ORDER)
        assert [step.number for step in registry] == list(range(1, 13))

    def test_get(self) -> None:
        step = StepRegistry().get(StepId.PRODUCT_BRIEF)
        assert step.name == "Ürün Özeti"
        assert step.category == StepCategory.BUSINESS
        assert step.template_path == "templates/step-03-product-brief.md"
        assert step.required_inputs == (StepId.BRAINSTORMING, StepId.RESEARCH)

    def test_get_accepts_string(self) -> None:
        assert StepRegistry().get("step-04-prd").id == StepId.PRD  # type: ignore[arg-type]

    def test_by_category(self) -> None:
        design = StepRegistry().by_category(StepCategory.DESIGN)
        assert [s.id for s in design] == [
            StepId.UX_DESIGN,
            StepId.ARCHITECTURE,
            StepId.EPICS_STORIES,
        ]

    def test_steps_before(self) -> None:
        registry = StepRegistry()
        assert registry.index_of(StepId.PRD) == 3
        assert list(registry.steps_before(StepId.PRD)) == [
            StepId.BRAINSTORMING,
            StepId.RESEARCH,
            StepId.PRODUCT_BRIEF,
        ]
        assert list(registry.steps_before(StepId.BRAINSTORMING)) == []

    def test_every_step_has_required_sections_entry(self) -> None:
        assert set(REQUIRED_SECTIONS) == set(StepId)


class TestValidateDefinitions:
    """Registry construction rejects broken tables."""

    def test_missing_step(self) -> None:
        definitions = default_definitions()
        del definitions[StepId.QA_TESTING]
        with pytest.raises(RegistryError, match="step-12-qa-testing"):
            StepRegistry(definitions)

    def test_forward_dependency(self) -> None:
        definitions = default_definitions()
        definitions[StepId.RESEARCH] = definitions[StepId.RESEARCH].model_copy(
            update={"required_inputs": (StepId.PRD,)}
        )
        with pytest.raises(RegistryError, match="does not come before"):
            validate_definitions(definitions)

    def test_self_dependency(self) -> None:
        definitions = default_definitions()
        definitions[StepId.PRD] = definitions[StepId.PRD].model_copy(
            update={"required_inputs": (StepId.PRD,)}
        )
        with pytest.raises(RegistryError):
            validate_definitions(definitions)

    def test_mismatched_key(self) -> None:
        definitions = default_definitions()
        definitions[StepId.PRD] = definitions[StepId.RESEARCH]
        with pytest.raises(RegistryError, match="describes step-02-research"):
            validate_definitions(definitions)

    def test_defaults_are_valid(self) -> None:
        validate_definitions(default_definitions())
