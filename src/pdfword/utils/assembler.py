"""
Document assembler module for PDF-to-Word conversion.

Provides:
- Page assembly (digital and scanned pages joined with page breaks)
- Pipeline orchestration (extraction, classification, OCR, layout)
- Progress reporting and conversion history updates
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any, Union, Iterable, Callable

from ..config import PipelineConfig, LayoutConfig, JSON_SCHEMA_VERSION
from .elements import DocElement, PageBreak, elements_to_text, element_to_dict
from .extract import PageContent, is_digital_page, iter_pdf_pages, get_pdf_page_count
from .layout import build_page_elements, paragraphs_from_ocr_text
from .io import ProcessingProgress, validate_pdf_file

logger = logging.getLogger(__name__)


class ConversionError(RuntimeError):
    """Raised when a document cannot be converted; nothing is kept."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        # History record marked failed, if a store was attached
        self.record_id = record_id


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class DigitalPage:
    """A page with a usable embedded text layer."""
    items: List[Any]
    page_height: float
    page_number: int = 0


@dataclass
class ScannedPage:
    """A page whose text comes from OCR."""
    ocr_text: str
    page_number: int = 0


@dataclass
class ConversionResult:
    """Complete conversion output."""
    elements: List[DocElement]
    text: str
    page_count: int
    used_ocr: bool = False
    source_file: str = ""
    task_id: str = ""
    created_at: str = ""
    processing_time_seconds: float = 0.0

    def __post_init__(self):
        if not self.task_id:
            self.task_id = str(uuid.uuid4())
        if not self.created_at:
            self.created_at = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": JSON_SCHEMA_VERSION,
            "task_id": self.task_id,
            "source_file": self.source_file,
            "created_at": self.created_at,
            "page_count": self.page_count,
            "used_ocr": self.used_ocr,
            "processing_time_seconds": round(self.processing_time_seconds, 2),
            "elements": [element_to_dict(el) for el in self.elements],
            "text": self.text,
        }


# ============================================================================
# Page Assembly
# ============================================================================

def page_elements(page: Union[DigitalPage, ScannedPage], config: Optional[LayoutConfig] = None) -> List[DocElement]:
    """Elements for a single page, by page kind."""
    if isinstance(page, DigitalPage):
        return build_page_elements(page.items, page.page_height, config)
    if isinstance(page, ScannedPage):
        return list(paragraphs_from_ocr_text(page.ocr_text, config))
    raise TypeError(f"Unknown page kind: {page!r}")


def assemble_pages(
    pages: Iterable[Union[DigitalPage, ScannedPage]],
    config: Optional[LayoutConfig] = None
) -> List[DocElement]:
    """
    Concatenate page elements in page order.

    A PageBreak precedes every page after the first, so N pages always yield
    exactly N - 1 page breaks, even when a page contributes no elements.
    """
    elements: List[DocElement] = []
    for index, page in enumerate(pages):
        if index > 0:
            elements.append(PageBreak())
        elements.extend(page_elements(page, config))
    return elements


# ============================================================================
# Document Assembler
# ============================================================================

class DocumentAssembler:
    """
    Orchestrates the conversion pipeline.

    Coordinates:
    - Text extraction
    - Digital/scanned page classification
    - OCR of scanned pages
    - Layout reconstruction and page assembly
    - Conversion history
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        text_ocr=None,
        store=None,
        progress_callback: Optional[Callable[[ProcessingProgress], None]] = None
    ):
        self.config = config or PipelineConfig()
        self.store = store
        self.progress_callback = progress_callback

        self._text_ocr = text_ocr

    @property
    def text_ocr(self):
        if self._text_ocr is None:
            from .ocr_text import TextOCR
            self._text_ocr = TextOCR(self.config.ocr)
        return self._text_ocr

    def prepare_page(
        self,
        content: PageContent,
        pdf_path: Optional[Union[str, Path]],
        progress: ProcessingProgress
    ) -> Union[DigitalPage, ScannedPage]:
        """Classify a page and run OCR on it if it is scanned."""
        if is_digital_page(content.items, self.config.ocr.text_threshold):
            logger.info(f"Page {content.page_number}: digital ({len(content.items)} runs)")
            return DigitalPage(
                items=content.items,
                page_height=content.page_height,
                page_number=content.page_number
            )

        logger.info(f"Page {content.page_number}: scanned, running OCR")
        progress.update(
            "ocr", progress.current_page,
            f"OCR scanning page {content.page_number}"
        )
        result = self.text_ocr.recognize_pdf_page(pdf_path, content.page_number)
        return ScannedPage(ocr_text=result.text, page_number=content.page_number)

    def convert_pages(
        self,
        contents: Iterable[PageContent],
        total_pages: int,
        source_file: str = "",
        pdf_path: Optional[Union[str, Path]] = None
    ) -> ConversionResult:
        """
        Convert already extracted pages.

        Args:
            contents: Extractor output per page, in page order
            total_pages: Number of pages expected (for progress)
            source_file: Name recorded in the result
            pdf_path: PDF used to render scanned pages for OCR
        """
        start_time = time.time()
        progress = ProcessingProgress(total_pages=total_pages, callback=self.progress_callback)

        prepared = []
        for position, content in enumerate(contents, start=1):
            progress.update(
                "extracting", position,
                f"Reading page {content.page_number} ({position} of {total_pages})"
            )
            prepared.append(self.prepare_page(content, pdf_path, progress))

        elements = assemble_pages(prepared, self.config.layout)
        progress.update("done", total_pages, "Processing complete")

        result = ConversionResult(
            elements=elements,
            text=elements_to_text(elements),
            page_count=len(prepared),
            used_ocr=any(isinstance(p, ScannedPage) for p in prepared),
            source_file=source_file,
            processing_time_seconds=time.time() - start_time
        )
        logger.info(
            f"Converted {result.page_count} page(s) into {len(elements)} elements "
            f"in {result.processing_time_seconds:.2f}s"
        )
        return result

    def convert(
        self,
        pdf_path: Union[str, Path],
        pages: Optional[List[int]] = None
    ) -> ConversionResult:
        """
        Convert a PDF file.

        The conversion is all-or-nothing: any failure discards the pages
        processed so far, marks the history record as failed and raises
        ConversionError with a single readable message.

        Args:
            pdf_path: Path to the PDF file
            pages: Optional 1-indexed page numbers to convert

        Returns:
            ConversionResult with elements and plain text
        """
        pdf_path = Path(pdf_path)
        record = None
        if self.store is not None and pdf_path.exists():
            record = self.store.create(
                pdf_path.name, str(pdf_path), pdf_path.stat().st_size
            )

        try:
            validate_pdf_file(pdf_path, self.config.max_file_size)
            if record is not None:
                self.store.update(record.id, "processing")

            if self.progress_callback is not None:
                self.progress_callback(ProcessingProgress())

            if pages is None:
                pages = list(range(1, get_pdf_page_count(pdf_path) + 1))
            if self.config.max_pages is not None:
                pages = pages[:self.config.max_pages]

            result = self.convert_pages(
                iter_pdf_pages(pdf_path, pages),
                total_pages=len(pages),
                source_file=pdf_path.name,
                pdf_path=pdf_path
            )
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(
                f"Conversion of {pdf_path.name} failed: {message}",
                exc_info=self.config.debug_mode
            )
            if record is not None:
                self.store.update(record.id, "failed", error_message=message)
            raise ConversionError(
                message, record_id=record.id if record is not None else None
            ) from e

        if record is not None:
            self.store.update(
                record.id, "completed",
                extracted_text=result.text,
                page_count=result.page_count
            )
            result.task_id = record.id
        return result
