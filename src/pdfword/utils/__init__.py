"""
Utility modules for the PDF-to-Word conversion pipeline.
"""

from .io import validate_pdf_file, format_file_size, save_json, load_json, ensure_dir, ProcessingProgress
from .elements import Paragraph, Table, PageBreak, DocElement, elements_to_text, PAGE_BREAK_SENTINEL
from .layout import build_page_elements, MalformedInputError, RawGlyph, RawMarker
from .extract import PageContent, iter_pdf_pages, is_digital_page
from .ocr_text import TextOCR, OCRResult
from .assembler import DocumentAssembler, ConversionResult, ConversionError, assemble_pages
from .history import ConversionStore, ConversionRecord
from .export import DocxExporter, MarkdownExporter, TextExporter, DocumentExporter

__all__ = [
    # IO
    "validate_pdf_file", "format_file_size", "save_json", "load_json", "ensure_dir",
    "ProcessingProgress",
    # Elements
    "Paragraph", "Table", "PageBreak", "DocElement", "elements_to_text", "PAGE_BREAK_SENTINEL",
    # Layout
    "build_page_elements", "MalformedInputError", "RawGlyph", "RawMarker",
    # Extraction
    "PageContent", "iter_pdf_pages", "is_digital_page",
    # OCR
    "TextOCR", "OCRResult",
    # Assembly
    "DocumentAssembler", "ConversionResult", "ConversionError", "assemble_pages",
    # History
    "ConversionStore", "ConversionRecord",
    # Export
    "DocxExporter", "MarkdownExporter", "TextExporter", "DocumentExporter",
]
