"""
PDF text extraction module.

Provides:
- Per-page glyph runs from PyMuPDF, expressed in the bottom-up
  ``[sx, kx, ky, sy, tx, ty]`` transform convention the layout stage reads
- Page classification (digital vs scanned)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union, Iterator, Iterable

from .layout import RawGlyph, RawItem, as_glyph

logger = logging.getLogger(__name__)

# Minimum embedded-text characters for a page to be considered digital
TEXT_THRESHOLD = 30


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class PageContent:
    """Raw extractor output for one page."""
    page_number: int
    page_height: float
    items: List[RawItem] = field(default_factory=list)

    @property
    def embedded_text(self) -> str:
        return embedded_text(self.items)


# ============================================================================
# Page Classification
# ============================================================================

def embedded_text(items: Iterable[RawItem]) -> str:
    """Concatenate the text of all glyph runs, stripped."""
    parts = []
    for item in items:
        glyph = as_glyph(item)
        if glyph is not None:
            parts.append(glyph.text)
    return "".join(parts).strip()


def is_digital_page(items: Iterable[RawItem], threshold: int = TEXT_THRESHOLD) -> bool:
    """A page is digital when it carries at least ``threshold`` characters of text."""
    return len(embedded_text(items)) >= threshold


# ============================================================================
# PyMuPDF Extraction
# ============================================================================

def _open_pdf(pdf_path: Union[str, Path]):
    try:
        import fitz  # PyMuPDF
    except ImportError:
        raise ImportError(
            "PyMuPDF is required for text extraction. "
            "Install with: pip install pymupdf"
        )

    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    try:
        return fitz.open(str(pdf_path))
    except Exception as e:
        raise RuntimeError(f"Failed to parse PDF: {e}")


def page_to_content(page, page_number: int) -> PageContent:
    """
    Convert a PyMuPDF page into extractor items.

    PyMuPDF reports span origins (baseline) in top-down coordinates; they are
    flipped to bottom-up so ``transform[5]`` is the baseline measured from the
    bottom of the page.
    """
    page_height = float(page.rect.height)
    items: List[RawItem] = []

    data = page.get_text("dict") or {}
    for block in data.get("blocks", []):
        # Image blocks (type 1) carry no text
        if block.get("type", 0) != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text") or ""
                x0, y0, x1, y1 = span.get("bbox", (0.0, 0.0, 0.0, 0.0))
                origin_x, origin_y = span.get("origin", (x0, y1))
                size = float(span.get("size", y1 - y0))
                items.append(RawGlyph(
                    text=text,
                    transform=(size, 0.0, 0.0, size, float(origin_x), page_height - float(origin_y)),
                    width=float(x1 - x0),
                    height=size,
                    font_name=span.get("font", ""),
                ))

    return PageContent(page_number=page_number, page_height=page_height, items=items)


def iter_pdf_pages(
    pdf_path: Union[str, Path],
    pages: Optional[List[int]] = None
) -> Iterator[PageContent]:
    """
    Yield extractor output for each page in page-number order.

    Args:
        pdf_path: Path to the PDF file
        pages: Optional 1-indexed page numbers to restrict extraction to

    Raises:
        FileNotFoundError: If the PDF does not exist
        RuntimeError: If the PDF cannot be parsed
    """
    doc = _open_pdf(pdf_path)
    try:
        numbers = pages if pages is not None else list(range(1, doc.page_count + 1))
        for number in numbers:
            if not 1 <= number <= doc.page_count:
                logger.warning(f"Skipping page {number}: document has {doc.page_count} pages")
                continue
            yield page_to_content(doc[number - 1], number)
    finally:
        doc.close()


def get_pdf_page_count(pdf_path: Union[str, Path]) -> int:
    """Get the number of pages in a PDF file."""
    doc = _open_pdf(pdf_path)
    try:
        return doc.page_count
    finally:
        doc.close()
