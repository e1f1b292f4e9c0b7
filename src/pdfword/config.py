"""
Configuration and constants for the PDF-to-Word conversion pipeline.

This module provides:
- Layout tuning constants (row/column tolerances, table thresholds)
- OCR settings for scanned pages
- Word document styling
- Environment overrides
"""

import os
from dataclasses import dataclass, field
from typing import Optional, List
from pathlib import Path
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("pdfword")


def setup_logging(level: int = logging.INFO):
    """Configure root logging with the pipeline's format."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


# ============================================================================
# Directory Paths
# ============================================================================

DEFAULT_HISTORY_PATH = Path.home() / ".pdfword" / "history.json"


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class LayoutConfig:
    """Layout reconstruction tuning constants (PDF user units)."""
    row_tolerance: float = 4.0
    col_tolerance: float = 18.0
    min_table_cols: int = 2
    min_table_rows: int = 2
    heading_max_len: int = 80

    def __post_init__(self):
        for name in ("row_tolerance", "col_tolerance", "min_table_cols",
                     "min_table_rows", "heading_max_len"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be positive, got {value!r}")


@dataclass
class OCRConfig:
    """OCR configuration for scanned pages."""
    language: str = "eng"
    tesseract_config: str = "--oem 3 --psm 3"
    dpi: int = 300
    # Minimum embedded characters for a page to count as digital
    text_threshold: int = 30


@dataclass
class ExportConfig:
    """Word document styling."""
    font_name: str = "Calibri"
    body_font_size: float = 11
    heading_font_size: float = 14
    paragraph_spacing_after: float = 6  # points
    formats: List[str] = field(default_factory=lambda: ["docx", "text"])


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    max_file_size: int = 20 * 1024 * 1024
    max_pages: Optional[int] = None  # None = process all pages
    history_path: Optional[Path] = None
    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_number(name: str, cast):
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed {name}={raw!r}")
        return None


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    layout_overrides = {
        "row_tolerance": _env_number("PDFWORD_ROW_TOLERANCE", float),
        "col_tolerance": _env_number("PDFWORD_COL_TOLERANCE", float),
        "min_table_rows": _env_number("PDFWORD_MIN_TABLE_ROWS", int),
        "min_table_cols": _env_number("PDFWORD_MIN_TABLE_COLS", int),
        "heading_max_len": _env_number("PDFWORD_HEADING_MAX_LEN", int),
    }
    layout_overrides = {k: v for k, v in layout_overrides.items() if v is not None}
    if layout_overrides:
        try:
            config.layout = LayoutConfig(**layout_overrides)
        except ValueError as e:
            logger.warning(f"Ignoring layout overrides: {e}")

    if os.environ.get("PDFWORD_OCR_LANG"):
        config.ocr.language = os.environ["PDFWORD_OCR_LANG"]

    dpi = _env_number("PDFWORD_OCR_DPI", int)
    if dpi and dpi > 0:
        config.ocr.dpi = dpi

    if os.environ.get("PDFWORD_HISTORY"):
        config.history_path = Path(os.environ["PDFWORD_HISTORY"])

    if os.environ.get("PDFWORD_DEBUG", "").lower() == "true":
        config.debug_mode = True

    return config


# ============================================================================
# Serialization
# ============================================================================

JSON_SCHEMA_VERSION = "1.0"
