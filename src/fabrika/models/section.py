"""Parsed section and validation result models."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Section(BaseModel):
    """Heading-delimited subdivision of generated text.

    Line numbers are 0-based indexes into ``content.split("\\n")``.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    title: str
    level: int = Field(ge=1, le=6)
    content: str
    start_line: int
    end_line: int


class ValidationResult(BaseModel):
    """Outcome of validating generated text against step requirements."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
