"""
Layout reconstruction module for PDF-to-Word conversion.

Turns the flat stream of positioned glyph runs produced by a PDF text
extractor into paragraphs, headings and tables.

Provides:
- Run normalization (bottom-up PDF space to top-down page space)
- Line grouping by vertical position
- Table vs paragraph block segmentation
- Element emission (paragraphs, headings, tables)

Every function here is pure: the configuration is passed per call and no
state is kept between pages, so pages can be processed independently.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Dict, Any, Union, Iterable

from ..config import LayoutConfig
from .elements import DocElement, Paragraph, Table
from .tables import bucket_columns, count_aligned, build_grid

logger = logging.getLogger(__name__)

_UPPER_LATIN = re.compile(r"[A-Z]")


class MalformedInputError(ValueError):
    """Raised when a page height is not a positive finite number."""


# ============================================================================
# Data Classes and Enums
# ============================================================================

@dataclass
class RawGlyph:
    """A glyph run as emitted by the extractor (bottom-up coordinates)."""
    text: str
    transform: Sequence[float]  # [sx, kx, ky, sy, tx, ty]
    width: float = 0.0
    height: float = 0.0
    font_name: str = ""


@dataclass
class RawMarker:
    """Structural annotation interleaved by the extractor; carries no text."""
    payload: Dict[str, Any] = field(default_factory=dict)


RawItem = Union[RawGlyph, RawMarker, Dict[str, Any]]


@dataclass(frozen=True)
class PositionedRun:
    """A glyph run in top-down page coordinates."""
    text: str
    x: float
    y: float
    width: float
    height: float
    font_name: str = ""


@dataclass
class Line:
    """Runs sharing approximately the same y, sorted left to right."""
    y: float
    items: List[PositionedRun]

    @property
    def text(self) -> str:
        return " ".join(item.text for item in self.items).strip()


class BlockKind(Enum):
    """Kinds of segmented blocks."""
    PARAGRAPH = "paragraph"
    TABLE = "table"


@dataclass
class Block:
    """A contiguous run of lines classified jointly."""
    kind: BlockKind
    lines: List[Line]


# ============================================================================
# Heading Detection
# ============================================================================

def is_heading_text(text: str, max_len: int = 80) -> bool:
    """
    Check whether a string looks like an all-caps heading.

    A heading is non-empty, shorter than ``max_len``, unchanged by
    upper-casing and contains at least one ASCII capital letter.
    """
    t = text.strip()
    return (
        len(t) > 0
        and len(t) < max_len
        and t == t.upper()
        and _UPPER_LATIN.search(t) is not None
    )


# ============================================================================
# S1: Normalize
# ============================================================================

def as_glyph(item: Any) -> Optional[RawGlyph]:
    """Return the glyph view of an extractor item, or None for markers."""
    if isinstance(item, RawGlyph):
        return item
    if isinstance(item, RawMarker):
        return None
    if isinstance(item, dict):
        text = item.get("str", item.get("text"))
        if not isinstance(text, str):
            return None
        return RawGlyph(
            text=text,
            transform=item.get("transform", (1, 0, 0, 1, 0, 0)),
            width=float(item.get("width", 0.0)),
            height=float(item.get("height", 0.0)),
            font_name=item.get("fontName", item.get("font_name", "")) or "",
        )
    text = getattr(item, "text", None)
    if isinstance(text, str) and hasattr(item, "transform"):
        return RawGlyph(
            text=text,
            transform=item.transform,
            width=float(getattr(item, "width", 0.0)),
            height=float(getattr(item, "height", 0.0)),
            font_name=getattr(item, "font_name", "") or "",
        )
    return None


def check_page_height(page_height: Any) -> float:
    """Validate a page height, raising MalformedInputError if unusable."""
    if isinstance(page_height, bool) or not isinstance(page_height, (int, float)):
        raise MalformedInputError(f"page_height must be a number, got {page_height!r}")
    if not math.isfinite(page_height) or page_height <= 0:
        raise MalformedInputError(f"page_height must be positive and finite, got {page_height!r}")
    return float(page_height)


def normalize_runs(items: Iterable[RawItem], page_height: float) -> List[PositionedRun]:
    """
    Convert raw extractor items into top-down positioned runs.

    Markers and whitespace-only runs are dropped. The extractor's
    ``transform[5]`` is the baseline in bottom-up units, so the top edge is
    ``page_height - transform[5] - |height|``.

    Args:
        items: Glyph runs and markers in extractor order
        page_height: Page height in PDF user units

    Returns:
        Positioned runs in input order

    Raises:
        MalformedInputError: If page_height is not a positive finite number
    """
    page_height = check_page_height(page_height)

    runs = []
    for raw in items:
        glyph = as_glyph(raw)
        if glyph is None or not glyph.text.strip():
            continue

        height = abs(glyph.height)
        runs.append(PositionedRun(
            text=glyph.text,
            x=float(glyph.transform[4]),
            y=page_height - float(glyph.transform[5]) - height,
            width=glyph.width,
            height=height,
            font_name=glyph.font_name,
        ))
    return runs


# ============================================================================
# S2: Line Grouping
# ============================================================================

def group_into_lines(runs: Sequence[PositionedRun], config: Optional[LayoutConfig] = None) -> List[Line]:
    """
    Cluster runs into horizontal lines.

    Runs are scanned top to bottom; a run joins the current line when its y
    is within ``row_tolerance`` of the line's first run. Sorting is stable,
    so runs at identical positions keep their input order.
    """
    config = config or LayoutConfig()
    if not runs:
        return []

    ordered = sorted(runs, key=lambda r: r.y)

    lines = []
    current = [ordered[0]]
    current_y = ordered[0].y

    for run in ordered[1:]:
        if abs(run.y - current_y) <= config.row_tolerance:
            current.append(run)
        else:
            lines.append(Line(y=current_y, items=sorted(current, key=lambda r: r.x)))
            current = [run]
            current_y = run.y
    lines.append(Line(y=current_y, items=sorted(current, key=lambda r: r.x)))

    return lines


# ============================================================================
# S3: Block Segmentation
# ============================================================================

def try_extract_table(
    lines: Sequence[Line],
    start: int,
    config: Optional[LayoutConfig] = None
) -> Optional[List[Line]]:
    """
    Greedily grow a table starting at ``lines[start]``.

    A line is accepted while it has at least ``min_table_cols`` runs and at
    least that many of its runs align with the running column anchors. The
    anchors absorb every accepted line's x positions.

    Returns:
        The accepted lines, or None if fewer than ``min_table_rows`` qualify
    """
    config = config or LayoutConfig()
    accepted: List[Line] = []
    anchors: List[float] = []

    for line in lines[start:]:
        if len(line.items) < config.min_table_cols:
            break

        xs = [item.x for item in line.items]

        if not anchors:
            anchors = bucket_columns(xs, config.col_tolerance)
            if len(anchors) < config.min_table_cols:
                break
        else:
            if count_aligned(xs, anchors, config.col_tolerance) < config.min_table_cols:
                break
            anchors = bucket_columns(anchors + xs, config.col_tolerance)

        accepted.append(line)

    if len(accepted) < config.min_table_rows:
        return None
    return accepted


def segment_into_blocks(lines: Sequence[Line], config: Optional[LayoutConfig] = None) -> List[Block]:
    """
    Split lines into table blocks and single-line paragraph blocks.

    The concatenation of all returned blocks' lines equals ``lines``.
    """
    config = config or LayoutConfig()
    blocks = []
    i = 0

    while i < len(lines):
        table_lines = try_extract_table(lines, i, config)
        if table_lines:
            blocks.append(Block(kind=BlockKind.TABLE, lines=table_lines))
            i += len(table_lines)
        else:
            blocks.append(Block(kind=BlockKind.PARAGRAPH, lines=[lines[i]]))
            i += 1

    return blocks


# ============================================================================
# S4: Element Emission
# ============================================================================

def table_block_to_element(block: Block, config: Optional[LayoutConfig] = None) -> Table:
    """Convert a table block into a rectangular cell grid."""
    config = config or LayoutConfig()
    all_xs = [item.x for line in block.lines for item in line.items]
    anchors = bucket_columns(all_xs, config.col_tolerance)

    rows = build_grid(
        [[(item.x, item.text) for item in line.items] for line in block.lines],
        anchors
    )
    return Table(rows=rows, col_count=len(anchors))


def paragraph_block_to_elements(block: Block, config: Optional[LayoutConfig] = None) -> List[Paragraph]:
    """Convert a paragraph block into paragraphs, skipping empty text."""
    config = config or LayoutConfig()
    paragraphs = []
    for line in block.lines:
        text = line.text
        if text:
            paragraphs.append(Paragraph(
                text=text,
                is_heading=is_heading_text(text, config.heading_max_len)
            ))
    return paragraphs


def block_to_elements(block: Block, config: Optional[LayoutConfig] = None) -> List[DocElement]:
    if block.kind is BlockKind.TABLE:
        return [table_block_to_element(block, config)]
    return list(paragraph_block_to_elements(block, config))


# ============================================================================
# Public Entry Points
# ============================================================================

def build_page_elements(
    items: Iterable[RawItem],
    page_height: float,
    config: Optional[LayoutConfig] = None
) -> List[DocElement]:
    """
    Reconstruct the structure of one digital page.

    Args:
        items: Extractor items for the page (glyph runs and markers)
        page_height: Page height in PDF user units
        config: Tuning constants (defaults if omitted)

    Returns:
        Paragraph and Table elements in top-to-bottom order
    """
    config = config or LayoutConfig()

    runs = normalize_runs(items, page_height)
    if not runs:
        return []

    lines = group_into_lines(runs, config)
    blocks = segment_into_blocks(lines, config)

    elements: List[DocElement] = []
    for block in blocks:
        elements.extend(block_to_elements(block, config))

    logger.debug(
        f"Layout: {len(runs)} runs -> {len(lines)} lines -> "
        f"{len(blocks)} blocks -> {len(elements)} elements"
    )
    return elements


def paragraphs_from_ocr_text(text: str, config: Optional[LayoutConfig] = None) -> List[Paragraph]:
    """Turn OCR output into one paragraph per non-empty line."""
    config = config or LayoutConfig()
    paragraphs = []
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if line:
            paragraphs.append(Paragraph(
                text=line,
                is_heading=is_heading_text(line, config.heading_max_len)
            ))
    return paragraphs
