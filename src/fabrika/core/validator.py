"""Structural validation of generated step output."""

from collections.abc import Mapping, Sequence

from ..constants import MIN_CONTENT_LENGTH
from ..models import Section, StepId, ValidationResult
from .registry import REQUIRED_SECTIONS
from .section_parser import normalize_title

EMPTY_CONTENT_ERROR = "Yanıt içeriği boş."
MISSING_SECTION_ERROR = "Gerekli bölüm eksik: {title}"
SHORT_CONTENT_WARNING = "Yanıt çok kısa, daha detaylı içerik bekleniyor."
UNPARSED_HEADINGS_WARNING = "Markdown başlıkları algılanamadı."


def validate(
    sections: Sequence[Section],
    step_id: StepId,
    raw_content: str,
    required_sections: Mapping[StepId, Sequence[str]] | None = None,
) -> ValidationResult:
    """Validate parsed sections against a step's requirements.

    Empty or whitespace-only content fails immediately with a single
    error and no warnings. Otherwise every required title must match a
    parsed title (case- and diacritic-insensitive, substring either way).
    Warnings never affect ``is_valid``.

    Args:
        sections: Sections parsed from ``raw_content``
        step_id: Step whose requirements apply
        raw_content: Original generated text
        required_sections: Optional override of the static requirement table

    Returns:
        Validation result with errors and warnings in check order
    """
    if not raw_content.strip():
        return ValidationResult(is_valid=False, errors=[EMPTY_CONTENT_ERROR], warnings=[])

    errors: list[str] = []
    warnings: list[str] = []

    table = REQUIRED_SECTIONS if required_sections is None else required_sections
    required = table.get(step_id, REQUIRED_SECTIONS.get(step_id, ()))
    titles = [normalize_title(section.title) for section in sections]
    titles = [found for found in titles if found]

    for title in required:
        wanted = normalize_title(title)
        if not any(wanted in found or found in wanted for found in titles):
            errors.append(MISSING_SECTION_ERROR.format(title=title))

    if len(raw_content.strip()) < MIN_CONTENT_LENGTH:
        warnings.append(SHORT_CONTENT_WARNING)

    if not sections and "#" in raw_content:
        warnings.append(UNPARSED_HEADINGS_WARNING)

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
