"""Step registry: static metadata for every workflow step.

The registry maps each ``StepId`` variant to its ``StepDefinition`` and is
validated on construction, so a missing entry or a dependency pointing
forward in the workflow fails at startup instead of mid-run.
"""

from collections.abc import Iterator, Mapping, Sequence

from ..errors import RegistryError
from ..models import StepCategory, StepDefinition, StepId

STEP_ORDER: tuple[StepId, ...] = tuple(StepId)

STEP_NAMES: dict[StepId, str] = {
    StepId.BRAINSTORMING: "Fikir Geliştirme",
    StepId.RESEARCH: "Araştırma",
    StepId.PRODUCT_BRIEF: "Ürün Özeti",
    StepId.PRD: "Gereksinimler",
    StepId.UX_DESIGN: "UX Tasarımı",
    StepId.ARCHITECTURE: "Mimari",
    StepId.EPICS_STORIES: "Epic ve Hikayeler",
    StepId.SPRINT_PLANNING: "Sprint Planlama",
    StepId.TECH_SPEC: "Teknik Şartname",
    StepId.DEVELOPMENT: "Geliştirme",
    StepId.CODE_REVIEW: "Kod İnceleme",
    StepId.QA_TESTING: "Test",
}

STEP_DESCRIPTIONS: dict[StepId, str] = {
    StepId.BRAINSTORMING: "Proje fikri üzerinde beyin fırtınası yapılır",
    StepId.RESEARCH: "Pazar, teknik ve alan araştırması yapılır",
    StepId.PRODUCT_BRIEF: "Ürün özeti ve vizyonu belirlenir",
    StepId.PRD: "Detaylı gereksinimler dokümanı oluşturulur",
    StepId.UX_DESIGN: "Kullanıcı deneyimi tasarlanır",
    StepId.ARCHITECTURE: "Sistem mimarisi tasarlanır",
    StepId.EPICS_STORIES: "Epic ve kullanıcı hikayeleri oluşturulur",
    StepId.SPRINT_PLANNING: "Sprint planlaması yapılır",
    StepId.TECH_SPEC: "Teknik şartname hazırlanır",
    StepId.DEVELOPMENT: "Kod geliştirme yapılır",
    StepId.CODE_REVIEW: "Kod incelemesi yapılır",
    StepId.QA_TESTING: "Test ve kalite kontrolü yapılır",
}

STEP_CATEGORIES: dict[StepId, StepCategory] = {
    StepId.BRAINSTORMING: StepCategory.BUSINESS,
    StepId.RESEARCH: StepCategory.BUSINESS,
    StepId.PRODUCT_BRIEF: StepCategory.BUSINESS,
    StepId.PRD: StepCategory.BUSINESS,
    StepId.UX_DESIGN: StepCategory.DESIGN,
    StepId.ARCHITECTURE: StepCategory.DESIGN,
    StepId.EPICS_STORIES: StepCategory.DESIGN,
    StepId.SPRINT_PLANNING: StepCategory.TECHNICAL,
    StepId.TECH_SPEC: StepCategory.TECHNICAL,
    StepId.DEVELOPMENT: StepCategory.TECHNICAL,
    StepId.CODE_REVIEW: StepCategory.TECHNICAL,
    StepId.QA_TESTING: StepCategory.TECHNICAL,
}

STEP_DEPENDENCIES: dict[StepId, tuple[StepId, ...]] = {
    StepId.BRAINSTORMING: (),
    StepId.RESEARCH: (StepId.BRAINSTORMING,),
    StepId.PRODUCT_BRIEF: (StepId.BRAINSTORMING, StepId.RESEARCH),
    StepId.PRD: (StepId.PRODUCT_BRIEF,),
    StepId.UX_DESIGN: (StepId.PRD,),
    StepId.ARCHITECTURE: (StepId.PRD,),
    StepId.EPICS_STORIES: (StepId.PRD, StepId.ARCHITECTURE),
    StepId.SPRINT_PLANNING: (StepId.EPICS_STORIES,),
    StepId.TECH_SPEC: (StepId.ARCHITECTURE, StepId.EPICS_STORIES),
    StepId.DEVELOPMENT: (StepId.TECH_SPEC,),
    StepId.CODE_REVIEW: (StepId.DEVELOPMENT,),
    StepId.QA_TESTING: (StepId.DEVELOPMENT,),
}

# Titles each step's output must contain (matched case- and diacritic-insensitively)
REQUIRED_SECTIONS: dict[StepId, tuple[str, ...]] = {
    StepId.BRAINSTORMING: ("Fikirler",),
    StepId.RESEARCH: ("Pazar Analizi",),
    StepId.PRODUCT_BRIEF: ("Ürün Özeti", "Hedef Kitle"),
    StepId.PRD: ("Fonksiyonel Gereksinimler",),
    StepId.UX_DESIGN: ("Kullanıcı Akışları",),
    StepId.ARCHITECTURE: ("Mimari",),
    StepId.EPICS_STORIES: ("Epic",),
    StepId.SPRINT_PLANNING: ("Sprint",),
    StepId.TECH_SPEC: ("Teknik",),
    StepId.DEVELOPMENT: (),
    StepId.CODE_REVIEW: ("Bulgular",),
    StepId.QA_TESTING: ("Test",),
}


def default_definitions() -> dict[StepId, StepDefinition]:
    """Build the built-in step definitions in workflow order."""
    return {
        step_id: StepDefinition(
            id=step_id,
            name=STEP_NAMES[step_id],
            description=STEP_DESCRIPTIONS[step_id],
            category=STEP_CATEGORIES[step_id],
            template_path=f"templates/{step_id.value}.md",
            required_inputs=STEP_DEPENDENCIES[step_id],
        )
        for step_id in STEP_ORDER
    }


def validate_definitions(definitions: Mapping[StepId, StepDefinition]) -> None:
    """Check a registry mapping for completeness and dependency order.

    Raises:
        RegistryError: If any step is missing, keyed wrongly, or depends on
            a step that does not come before it.
    """
    missing = [step.value for step in STEP_ORDER if step not in definitions]
    if missing:
        raise RegistryError(f"Registry is missing steps: {', '.join(missing)}")

    position = {step: index for index, step in enumerate(STEP_ORDER)}
    for key, definition in definitions.items():
        if key not in position:
            raise RegistryError(f"Registry has unknown step: {key}")
        if definition.id != key:
            raise RegistryError(f"Registry entry {key.value} describes {definition.id.value}")
        for dependency in definition.required_inputs:
            if position[dependency] >= position[key]:
                raise RegistryError(
                    f"Step {key.value} depends on {dependency.value}, "
                    "which does not come before it"
                )


class StepRegistry:
    """Validated, ordered view over the step definitions."""

    def __init__(self, definitions: Mapping[StepId, StepDefinition] | None = None) -> None:
        definitions = default_definitions() if definitions is None else definitions
        validate_definitions(definitions)
        self._steps: dict[StepId, StepDefinition] = {
            step_id: definitions[step_id] for step_id in STEP_ORDER
        }

    def get(self, step_id: StepId) -> StepDefinition:
        """Get a step definition by ID."""
        return self._steps[StepId(step_id)]

    def all_steps(self) -> list[StepDefinition]:
        """All step definitions in workflow order."""
        return list(self._steps.values())

    def by_category(self, category: StepCategory) -> list[StepDefinition]:
        return [step for step in self._steps.values() if step.category == category]

    def index_of(self, step_id: StepId) -> int:
        """0-based position of a step in workflow order."""
        return STEP_ORDER.index(StepId(step_id))

    def steps_before(self, step_id: StepId) -> Sequence[StepId]:
        return STEP_ORDER[: self.index_of(step_id)]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._steps.values())
