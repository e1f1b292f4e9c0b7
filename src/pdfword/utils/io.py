"""
I/O utilities for the conversion pipeline.

Handles:
- Input file validation
- PDF page rendering for OCR
- JSON serialization
- Directory management
- Progress tracking
"""

import json
import logging
from pathlib import Path
from typing import Union, Optional, Any, Dict, Callable
from dataclasses import dataclass, field, asdict

import numpy as np

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 20 * 1024 * 1024  # 20 MB


class InvalidInputFileError(ValueError):
    """Raised when an input file cannot be converted."""


# ============================================================================
# Input Validation
# ============================================================================

def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of an input file.

    Returns:
        One of: 'pdf', 'unknown'
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        return 'unknown'
    if input_path.suffix.lower() == '.pdf':
        return 'pdf'
    return 'unknown'


def validate_pdf_file(
    input_path: Union[str, Path],
    max_file_size: int = MAX_FILE_SIZE
) -> Path:
    """
    Check that a file exists, is a PDF and is within the size limit.

    Raises:
        InvalidInputFileError: If any check fails
    """
    input_path = Path(input_path)
    if not input_path.exists():
        raise InvalidInputFileError(f"File not found: {input_path}")
    if detect_input_type(input_path) != 'pdf':
        raise InvalidInputFileError(f"Not a PDF file: {input_path.name}")

    size = input_path.stat().st_size
    if size > max_file_size:
        raise InvalidInputFileError(
            f"{input_path.name} is {format_file_size(size)}; "
            f"the limit is {format_file_size(max_file_size)}"
        )
    return input_path


def format_file_size(num_bytes: int) -> str:
    """Human-readable size: ``0 B``, ``1.5 KB``, ``20 MB``."""
    if num_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(num_bytes / 1024 ** i, 1)
    if value == int(value):
        value = int(value)
    return f"{value} {units[i]}"


# ============================================================================
# PDF to Image Conversion
# ============================================================================

def load_pdf_page(
    pdf_path: Union[str, Path],
    page_number: int,
    dpi: int = 300
) -> np.ndarray:
    """
    Render a single PDF page using pdf2image (poppler backend).

    Args:
        pdf_path: Path to the PDF file
        page_number: Page to render (1-indexed)
        dpi: Resolution for rendering (300 recommended for OCR)

    Returns:
        Page image as a numpy array (BGR format)

    Raises:
        FileNotFoundError: If PDF file doesn't exist
        ImportError: If pdf2image is not installed
        RuntimeError: If the page cannot be rendered
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    try:
        from pdf2image import convert_from_path
        from pdf2image.exceptions import PDFPageCountError, PDFSyntaxError
    except ImportError:
        raise ImportError(
            "pdf2image is required. Install with: pip install pdf2image\n"
            "Also ensure poppler is installed on your system."
        )

    try:
        pil_images = convert_from_path(
            pdf_path,
            dpi=dpi,
            first_page=page_number,
            last_page=page_number,
            fmt='png'
        )
    except (PDFPageCountError, PDFSyntaxError) as e:
        raise RuntimeError(f"Failed to parse PDF: {e}")
    except Exception as e:
        if "poppler" in str(e).lower():
            raise RuntimeError(
                "Poppler is not installed. Install with:\n"
                "  macOS: brew install poppler\n"
                "  Linux: sudo apt-get install poppler-utils"
            )
        raise

    if not pil_images:
        raise RuntimeError(f"Page {page_number} could not be rendered")

    img_array = np.array(pil_images[0])
    # Convert RGB to BGR for OpenCV compatibility
    if len(img_array.shape) == 3 and img_array.shape[2] == 3:
        img_array = img_array[:, :, ::-1].copy()
    return img_array


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars, dataclasses and paths."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """Load data from a JSON file."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


# ============================================================================
# Progress Tracking
# ============================================================================

STAGES = ("loading", "extracting", "ocr", "done")


@dataclass
class ProcessingProgress:
    """Track progress of a conversion."""
    total_pages: int = 0
    current_page: int = 0
    stage: str = "loading"
    page_label: str = ""
    callback: Optional[Callable[["ProcessingProgress"], None]] = field(
        default=None, repr=False, compare=False
    )

    @property
    def percentage(self) -> int:
        if self.stage == "done":
            return 100
        if self.total_pages == 0 or self.current_page == 0:
            return 0
        return round((self.current_page - 1) / self.total_pages * 100)

    def update(self, stage: str, page: Optional[int] = None, label: str = ""):
        if stage not in STAGES:
            raise ValueError(f"Unknown progress stage: {stage}")
        self.stage = stage
        if page is not None:
            self.current_page = page
        self.page_label = label
        if self.callback is not None:
            self.callback(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.current_page,
            "total_pages": self.total_pages,
            "percentage": self.percentage,
            "stage": self.stage,
            "page_label": self.page_label,
        }
