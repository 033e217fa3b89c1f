"""Markdown section parsing for generated step output."""

import re
import unicodedata

from ..models import Section

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(\S.*)$")


def parse_sections(content: str) -> list[Section]:
    """Split markdown text into heading-delimited sections.

    A heading line (1-6 ``#`` followed by whitespace and text) opens a
    section and closes the previous one at the line before it. The last
    section ends at the last line of the content. Lines before the first
    heading belong to no section.

    Args:
        content: Raw generated text

    Returns:
        Sections in document order (empty when there are no headings)
    """
    lines = content.split("\n")
    sections: list[Section] = []

    current: dict[str, str | int] | None = None
    body: list[str] = []

    for index, line in enumerate(lines):
        match = HEADING_PATTERN.match(line)
        if match:
            if current is not None:
                sections.append(_close_section(current, body, index - 1))
            current = {
                "title": match.group(2).strip(),
                "level": len(match.group(1)),
                "start_line": index,
            }
            body = []
        elif current is not None:
            body.append(line)

    if current is not None:
        sections.append(_close_section(current, body, len(lines) - 1))

    return sections


def _close_section(header: dict[str, str | int], body: list[str], end_line: int) -> Section:
    return Section(
        title=str(header["title"]),
        level=int(header["level"]),
        content="\n".join(body).strip(),
        start_line=int(header["start_line"]),
        end_line=end_line,
    )


def normalize_title(title: str) -> str:
    """Lower-case and strip diacritics (NFD, then drop combining marks).

    >>> normalize_title("Ürün Özeti")
    'urun ozeti'
    """
    decomposed = unicodedata.normalize("NFD", title.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def titles_match(required: str, title: str) -> bool:
    """Bidirectional substring match on normalized titles.

    A title that normalizes to an empty string matches nothing.
    """
    normalized_required = normalize_title(required)
    normalized_title = normalize_title(title)
    if not normalized_title:
        return False
    return normalized_required in normalized_title or normalized_title in normalized_required


def find_section(sections: list[Section], title: str) -> Section | None:
    """Find the first section whose title matches ``title``."""
    for section in sections:
        if titles_match(title, section.title):
            return section
    return None


def sections_by_level(sections: list[Section], level: int) -> list[Section]:
    return [section for section in sections if section.level == level]
