"""
Document element model for the conversion pipeline.

Provides:
- Paragraph, Table and PageBreak elements (the DocElement union)
- Plain-text serialization used for storage and preview
- Dict conversion for JSON output
- Markdown rendering of tables
"""

from dataclasses import dataclass
from typing import List, Dict, Any, Union, Iterable

# Reserved line marking a page boundary in the plain-text serialization
PAGE_BREAK_SENTINEL = "--- Page Break ---"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class Paragraph:
    """A single paragraph of text, optionally flagged as a heading."""
    text: str
    is_heading: bool = False


@dataclass
class Table:
    """A rectangular grid of cell strings (row-major)."""
    rows: List[List[str]]
    col_count: int

    def __post_init__(self):
        if self.col_count <= 0:
            raise ValueError(f"col_count must be positive, got {self.col_count}")
        for row in self.rows:
            if len(row) != self.col_count:
                raise ValueError(
                    f"Table row has {len(row)} cells, expected {self.col_count}"
                )

    @property
    def num_rows(self) -> int:
        return len(self.rows)


@dataclass
class PageBreak:
    """Hard page break between two pages."""


DocElement = Union[Paragraph, Table, PageBreak]


# ============================================================================
# Serialization
# ============================================================================

def element_to_text(element: DocElement) -> str:
    """Render one element the way it is stored."""
    if isinstance(element, Paragraph):
        return element.text
    if isinstance(element, PageBreak):
        return PAGE_BREAK_SENTINEL
    if isinstance(element, Table):
        return "\n".join("\t".join(row) for row in element.rows)
    raise TypeError(f"Unknown document element: {element!r}")


def elements_to_text(elements: Iterable[DocElement]) -> str:
    """
    Serialize elements to plain text.

    Elements are joined with newlines; tables render one row per line with
    tab-separated cells and page breaks render as PAGE_BREAK_SENTINEL.
    """
    return "\n".join(element_to_text(el) for el in elements)


def element_to_dict(element: DocElement) -> Dict[str, Any]:
    if isinstance(element, Paragraph):
        return {"type": "paragraph", "text": element.text, "is_heading": element.is_heading}
    if isinstance(element, Table):
        return {"type": "table", "rows": [list(r) for r in element.rows], "col_count": element.col_count}
    if isinstance(element, PageBreak):
        return {"type": "page_break"}
    raise TypeError(f"Unknown document element: {element!r}")


def element_from_dict(data: Dict[str, Any]) -> DocElement:
    kind = data.get("type")
    if kind == "paragraph":
        return Paragraph(text=data["text"], is_heading=bool(data.get("is_heading", False)))
    if kind == "table":
        return Table(rows=[list(r) for r in data["rows"]], col_count=int(data["col_count"]))
    if kind == "page_break":
        return PageBreak()
    raise ValueError(f"Unknown element type: {kind!r}")


def elements_from_dicts(items: Iterable[Dict[str, Any]]) -> List[DocElement]:
    return [element_from_dict(item) for item in items]


def table_to_markdown(rows: List[List[str]]) -> str:
    """Build a Markdown table; the first row is used as the header."""
    if not rows or not rows[0]:
        return ""

    def _cell(text: str) -> str:
        return text.replace("|", "\\|")

    lines = ["| " + " | ".join(_cell(c) for c in rows[0]) + " |"]
    lines.append("| " + " | ".join("---" for _ in rows[0]) + " |")
    for row in rows[1:]:
        lines.append("| " + " | ".join(_cell(c) for c in row) + " |")
    return "\n".join(lines)


def text_statistics(text: str) -> Dict[str, int]:
    """Word and character counts shown next to the text preview."""
    return {
        "words": len(text.split()),
        "characters": len(text),
    }
