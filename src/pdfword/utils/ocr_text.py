"""
Text OCR module for scanned PDF pages.

Provides:
- Page rendering (pdf2image) and preprocessing (OpenCV)
- Tesseract recognition with line grouping and confidence scoring
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Dict, Any, Union
import numpy as np

from ..config import OCRConfig

logger = logging.getLogger(__name__)


class OCRUnavailableError(ImportError):
    """Raised when pytesseract or the tesseract binary is missing."""


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class LineResult:
    """OCR result for a line of text."""
    text: str
    confidence: float


@dataclass
class OCRResult:
    """Complete OCR result for a page."""
    text: str
    confidence: float
    lines: List[LineResult] = field(default_factory=list)
    engine_used: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "engine": self.engine_used,
        }


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine:
    """OCR using Tesseract."""

    def __init__(
        self,
        language: str = "eng",
        config: str = "--oem 3 --psm 3"
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()

        except Exception as e:
            raise OCRUnavailableError(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            )

        self.language = language
        self.config = config

    def _preprocess_for_ocr(self, image: np.ndarray) -> np.ndarray:
        """Preprocess image for better OCR results."""
        import cv2

        if len(image.shape) == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image.copy()

        # Resize if too small (helps OCR accuracy)
        h, w = gray.shape
        if h < 30:
            scale = 30.0 / h
            gray = cv2.resize(gray, None, fx=scale, fy=scale, interpolation=cv2.INTER_CUBIC)

        gray = cv2.adaptiveThreshold(
            gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 11, 2
        )
        gray = cv2.medianBlur(gray, 3)

        return gray

    def recognize(self, image: np.ndarray) -> OCRResult:
        """Recognize text using Tesseract."""
        processed = self._preprocess_for_ocr(image)

        data = self.pytesseract.image_to_data(
            processed,
            lang=self.language,
            config=self.config,
            output_type=self.pytesseract.Output.DICT
        )
        lines = group_words_into_lines(data)

        confidences = [line.confidence for line in lines]
        return OCRResult(
            text="\n".join(line.text for line in lines),
            confidence=float(np.mean(confidences)) if confidences else 0.0,
            lines=lines,
            engine_used="tesseract"
        )


def group_words_into_lines(data: Dict[str, List[Any]]) -> List[LineResult]:
    """
    Group ``image_to_data`` words into lines.

    Tesseract restarts ``line_num`` in every paragraph, so lines are keyed by
    (block_num, par_num, line_num).
    """
    lines: List[LineResult] = []
    current_key: Optional[Tuple[int, int, int]] = None
    words: List[str] = []
    confs: List[float] = []

    def _flush():
        if words:
            lines.append(LineResult(text=" ".join(words), confidence=float(np.mean(confs))))

    for i in range(len(data.get("text", []))):
        text = str(data["text"][i]).strip()
        conf = float(data["conf"][i])
        if conf < 0 or not text:  # -1 means no valid confidence
            continue

        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        if key != current_key:
            _flush()
            words, confs = [], []
            current_key = key
        words.append(text)
        confs.append(conf / 100.0)

    _flush()
    return lines


# ============================================================================
# Text OCR Interface
# ============================================================================

class TextOCR:
    """
    Page-level OCR interface.

    Renders a PDF page to an image and runs the engine on it. The engine is
    created on first use and reused for subsequent pages.
    """

    def __init__(self, config: Optional[OCRConfig] = None, engine=None):
        self.config = config or OCRConfig()
        self._engine = engine

    @property
    def engine(self):
        if self._engine is None:
            self._engine = TesseractEngine(
                language=self.config.language,
                config=self.config.tesseract_config
            )
            logger.info(f"Initialized OCR engine: tesseract ({self.config.language})")
        return self._engine

    def recognize(self, image: np.ndarray) -> OCRResult:
        return self.engine.recognize(image)

    def recognize_pdf_page(self, pdf_path: Union[str, Path], page_number: int) -> OCRResult:
        """Render one PDF page and recognize its text."""
        from .io import load_pdf_page

        image = load_pdf_page(pdf_path, page_number, dpi=self.config.dpi)
        result = self.recognize(image)
        logger.info(
            f"OCR page {page_number}: {len(result.lines)} lines "
            f"(confidence {result.confidence:.0%})"
        )
        return result
