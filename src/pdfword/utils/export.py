"""
Export module for PDF-to-Word conversion.

Provides:
- DOCX export (using python-docx)
- DOCX rebuilt from stored plain text
- Markdown export
- Plain-text export
- JSON export
"""

import io
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

from ..config import ExportConfig, LayoutConfig
from .elements import (
    DocElement, Paragraph, Table, PageBreak, PAGE_BREAK_SENTINEL,
    elements_to_text, element_to_dict, table_to_markdown
)
from .layout import is_heading_text
from .io import save_json

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("docx", "text", "markdown", "json")


def elements_from_plain_text(text: str, config: Optional[LayoutConfig] = None) -> List[DocElement]:
    """
    Recover elements from the plain-text serialization.

    The page break sentinel line becomes a PageBreak; every other line,
    blank ones included, becomes one trimmed paragraph. Table structure is
    not recovered.
    """
    config = config or LayoutConfig()
    elements: List[DocElement] = []
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if line == PAGE_BREAK_SENTINEL:
            elements.append(PageBreak())
        else:
            elements.append(Paragraph(
                text=line,
                is_heading=is_heading_text(line, config.heading_max_len)
            ))
    return elements


def _elements_of(document: Any) -> List[DocElement]:
    """Accept either a ConversionResult-like object or a list of elements."""
    elements = getattr(document, "elements", document)
    return list(elements)


# ============================================================================
# DOCX Exporter
# ============================================================================

class DocxExporter:
    """Export elements to DOCX format using python-docx."""

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()

    def _new_document(self):
        try:
            from docx import Document as DocxDocument
            from docx.shared import Pt
        except ImportError:
            raise ImportError(
                "python-docx is required for DOCX export. "
                "Install with: pip install python-docx"
            )

        doc = DocxDocument()

        normal = doc.styles["Normal"]
        normal.font.name = self.config.font_name
        normal.font.size = Pt(self.config.body_font_size)
        return doc

    def build(self, document: Any):
        """Build an in-memory python-docx Document."""
        doc = self._new_document()
        elements = _elements_of(document)

        # A page break is held until we know what follows it
        pending_break = False
        for element in elements:
            if isinstance(element, PageBreak):
                if pending_break:
                    doc.add_page_break()
                pending_break = True
            elif isinstance(element, Paragraph):
                p = self._add_paragraph(doc, element)
                if pending_break:
                    p.paragraph_format.page_break_before = True
                    pending_break = False
            elif isinstance(element, Table):
                if pending_break:
                    doc.add_page_break()
                    pending_break = False
                self._add_table(doc, element)
            else:
                raise TypeError(f"Unknown document element: {element!r}")

        if pending_break:
            doc.add_page_break()

        return doc

    def export(self, document: Any, output_path: Union[str, Path]) -> Path:
        """
        Export elements to a DOCX file.

        Args:
            document: ConversionResult or list of elements
            output_path: Output file path

        Returns:
            Path to the generated DOCX file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        doc = self.build(document)
        doc.save(str(output_path))
        logger.info(f"Exported DOCX to: {output_path}")

        return output_path

    def to_bytes(self, document: Any) -> bytes:
        """Serialize the DOCX into memory (for downloads)."""
        buffer = io.BytesIO()
        self.build(document).save(buffer)
        return buffer.getvalue()

    def export_text(self, text: str, output_path: Union[str, Path]) -> Path:
        """Rebuild a DOCX from stored plain text."""
        return self.export(elements_from_plain_text(text), output_path)

    def _add_paragraph(self, doc: Any, paragraph: Paragraph):
        from docx.shared import Pt

        if paragraph.is_heading:
            p = doc.add_paragraph(style="Heading 1")
            run = p.add_run(paragraph.text)
            run.bold = True
            run.font.size = Pt(self.config.heading_font_size)
        else:
            p = doc.add_paragraph()
            run = p.add_run(paragraph.text)
            run.font.size = Pt(self.config.body_font_size)

        run.font.name = self.config.font_name
        p.paragraph_format.space_after = Pt(self.config.paragraph_spacing_after)
        return p

    def _add_table(self, doc: Any, table_element: Table):
        """Add a table with equal percentage column widths."""
        from docx.shared import Emu

        section = doc.sections[-1]
        text_width = section.page_width - section.left_margin - section.right_margin
        percent = 100 // table_element.col_count
        col_width = Emu(int(text_width * percent / 100))

        table = doc.add_table(rows=table_element.num_rows, cols=table_element.col_count)
        table.style = 'Table Grid'
        table.autofit = False

        for i, row_data in enumerate(table_element.rows):
            row = table.rows[i]
            for j, cell_text in enumerate(row_data):
                cell = row.cells[j]
                cell.text = str(cell_text)
                cell.width = col_width

        for column in table.columns:
            column.width = col_width
        return table


# ============================================================================
# Markdown Exporter
# ============================================================================

class MarkdownExporter:
    """Export elements to Markdown format."""

    def __init__(self, include_page_breaks: bool = True):
        self.include_page_breaks = include_page_breaks

    def export(self, document: Any, output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.render(document))

        logger.info(f"Exported Markdown to: {output_path}")
        return output_path

    def render(self, document: Any) -> str:
        parts = []
        for element in _elements_of(document):
            if isinstance(element, Paragraph):
                parts.append(f"## {element.text}" if element.is_heading else element.text)
            elif isinstance(element, Table):
                parts.append(table_to_markdown(element.rows))
            elif isinstance(element, PageBreak):
                if self.include_page_breaks:
                    parts.append("---")
            else:
                raise TypeError(f"Unknown document element: {element!r}")
        return "\n\n".join(parts) + "\n" if parts else ""


# ============================================================================
# Plain Text Exporter
# ============================================================================

class TextExporter:
    """Export the plain-text serialization."""

    def export(self, document: Any, output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        text = getattr(document, "text", None)
        if not isinstance(text, str):
            text = elements_to_text(_elements_of(document))

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(text)

        logger.info(f"Exported text to: {output_path}")
        return output_path


# ============================================================================
# Multi-format Exporter
# ============================================================================

class DocumentExporter:
    """Convenience class for exporting to multiple formats."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        base_name: str = "document",
        config: Optional[ExportConfig] = None
    ):
        self.output_dir = Path(output_dir)
        self.base_name = base_name
        self.config = config or ExportConfig()

        self.docx_exporter = DocxExporter(self.config)
        self.markdown_exporter = MarkdownExporter()
        self.text_exporter = TextExporter()

    def export(
        self,
        document: Any,
        formats: Optional[List[str]] = None
    ) -> Dict[str, Path]:
        """
        Export a conversion to multiple formats.

        Args:
            document: ConversionResult or list of elements
            formats: Any of 'docx', 'text', 'markdown', 'json', or 'all'

        Returns:
            Dictionary mapping format to output path
        """
        if formats is None:
            formats = list(self.config.formats)
        if "all" in formats:
            formats = list(SUPPORTED_FORMATS)

        unknown = [f for f in formats if f not in SUPPORTED_FORMATS]
        if unknown:
            raise ValueError(f"Unsupported export format(s): {', '.join(unknown)}")

        self.output_dir.mkdir(parents=True, exist_ok=True)

        results = {}

        if "docx" in formats:
            path = self.output_dir / f"{self.base_name}.docx"
            results["docx"] = self.docx_exporter.export(document, path)

        if "text" in formats:
            path = self.output_dir / f"{self.base_name}.txt"
            results["text"] = self.text_exporter.export(document, path)

        if "markdown" in formats:
            path = self.output_dir / f"{self.base_name}.md"
            results["markdown"] = self.markdown_exporter.export(document, path)

        if "json" in formats:
            path = self.output_dir / f"{self.base_name}.json"
            if hasattr(document, "to_dict"):
                data = document.to_dict()
            else:
                data = {"elements": [element_to_dict(el) for el in _elements_of(document)]}
            results["json"] = save_json(data, path)
            logger.info(f"Exported JSON to: {path}")

        return results
