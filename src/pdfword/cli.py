#!/usr/bin/env python
"""
Command-line interface for the PDF-to-Word converter.

Usage:
    pdfword --input <pdf> --output <output_dir> [options]

Examples:
    # Convert a PDF to Word and plain text
    pdfword --input report.pdf --output ./output

    # Every format, verbose logging
    pdfword --input report.pdf --output ./output --format all --verbose

    # Looser column alignment for ragged tables
    pdfword --input report.pdf --output ./output --col-tolerance 24
"""

import sys
import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import LayoutConfig, get_config, setup_logging, DEFAULT_HISTORY_PATH

logger = logging.getLogger("pdfword")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="pdfword",
        description="PDF to Word - convert digital or scanned PDFs into editable documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Convert a PDF and export every format:
    pdfword --input document.pdf --output ./output --format all

  Process only specific pages:
    pdfword --input document.pdf --output ./output --pages 1-5

  Keep a conversion history:
    pdfword --input document.pdf --output ./output --history-file ~/.pdfword/history.json
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input PDF file"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    # Optional arguments
    parser.add_argument(
        "--format", "-f",
        nargs="+",
        default=["docx", "text"],
        choices=["docx", "text", "markdown", "json", "all"],
        help="Output format(s) (default: docx text)"
    )

    parser.add_argument(
        "--pages",
        type=str,
        default=None,
        help="Page range to process, e.g., '1-5' or '1,3,5' (default: all)"
    )

    parser.add_argument(
        "--dpi",
        type=int,
        default=None,
        help="DPI for rendering scanned pages before OCR (default: 300)"
    )

    parser.add_argument(
        "--lang",
        default=None,
        help="Tesseract language for scanned pages (default: eng)"
    )

    # Layout tuning
    layout = parser.add_argument_group("layout tuning")
    layout.add_argument(
        "--row-tolerance",
        type=float,
        default=None,
        help="Max vertical distance (PDF units) for runs on the same line (default: 4)"
    )
    layout.add_argument(
        "--col-tolerance",
        type=float,
        default=None,
        help="Max horizontal distance (PDF units) for runs in the same column (default: 18)"
    )
    layout.add_argument(
        "--min-table-rows",
        type=int,
        default=None,
        help="Minimum rows for a table (default: 2)"
    )
    layout.add_argument(
        "--min-table-cols",
        type=int,
        default=None,
        help="Minimum columns for a table (default: 2)"
    )

    parser.add_argument(
        "--history-file",
        type=str,
        default=None,
        help=f"Record conversions in this JSON file (e.g. {DEFAULT_HISTORY_PATH})"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Re-raise errors with a full traceback"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def parse_page_range(page_str: str, max_pages: int) -> List[int]:
    """Parse page range string to list of page numbers."""
    pages = []

    for part in page_str.split(","):
        part = part.strip()
        if "-" in part:
            start, end = part.split("-")
            start = max(int(start), 1)
            end = min(int(end), max_pages)
            pages.extend(range(start, end + 1))
        else:
            page = int(part)
            if 1 <= page <= max_pages:
                pages.append(page)

    return sorted(set(pages))


def check_dependencies(formats: List[str]) -> bool:
    """Check if required dependencies are available."""
    missing = []
    optional_missing = []

    try:
        import fitz  # noqa: F401
    except ImportError:
        missing.append("pymupdf")

    if "docx" in formats or "all" in formats:
        try:
            import docx  # noqa: F401
        except ImportError:
            missing.append("python-docx")

    # Only needed for scanned pages
    try:
        import pytesseract
        try:
            pytesseract.get_tesseract_version()
        except Exception:
            optional_missing.append("tesseract-ocr (system package, for scanned pages)")
    except ImportError:
        optional_missing.append("pytesseract (for scanned pages)")

    try:
        import pdf2image  # noqa: F401
    except ImportError:
        optional_missing.append("pdf2image (for scanned pages)")

    # Report
    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        logger.error("\nInstall with: pip install -e .")
        return False

    if optional_missing:
        logger.warning("Missing optional dependencies (scanned pages will fail):")
        for dep in optional_missing:
            logger.warning(f"  - {dep}")

    return True


def build_config(args):
    """Pipeline configuration from environment defaults and CLI flags."""
    config = get_config()

    overrides = {
        "row_tolerance": args.row_tolerance,
        "col_tolerance": args.col_tolerance,
        "min_table_rows": args.min_table_rows,
        "min_table_cols": args.min_table_cols,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        current = config.layout
        config.layout = LayoutConfig(
            row_tolerance=overrides.get("row_tolerance", current.row_tolerance),
            col_tolerance=overrides.get("col_tolerance", current.col_tolerance),
            min_table_cols=overrides.get("min_table_cols", current.min_table_cols),
            min_table_rows=overrides.get("min_table_rows", current.min_table_rows),
            heading_max_len=current.heading_max_len,
        )

    if args.dpi:
        config.ocr.dpi = args.dpi
    if args.lang:
        config.ocr.language = args.lang
    if args.history_file:
        config.history_path = Path(args.history_file).expanduser()
    if args.debug:
        config.debug_mode = True

    return config


def run_pipeline(args) -> int:
    """Run the conversion pipeline."""
    from .utils.assembler import DocumentAssembler, ConversionError
    from .utils.export import DocumentExporter
    from .utils.extract import get_pdf_page_count
    from .utils.history import ConversionStore
    from .utils.io import ensure_dir, validate_pdf_file, format_file_size
    from .utils.elements import text_statistics

    start_time = time.time()

    config = build_config(args)
    input_path = Path(args.input)
    output_dir = ensure_dir(args.output)

    validate_pdf_file(input_path, config.max_file_size)
    logger.info(f"Input: {input_path} ({format_file_size(input_path.stat().st_size)})")

    pages: Optional[List[int]] = None
    if args.pages:
        pages = parse_page_range(args.pages, get_pdf_page_count(input_path))
        if not pages:
            logger.error(f"No pages selected by --pages {args.pages}")
            return 1
        logger.info(f"Processing pages: {pages}")

    store = ConversionStore(config.history_path) if config.history_path else None

    def _report(progress):
        logger.debug(f"[{progress.percentage:3d}%] {progress.stage}: {progress.page_label}")

    assembler = DocumentAssembler(config, store=store, progress_callback=_report)

    logger.info("Converting document...")
    try:
        result = assembler.convert(input_path, pages=pages)
    except ConversionError as e:
        logger.error(f"Conversion failed: {e}")
        if config.debug_mode:
            raise
        return 1

    exporter = DocumentExporter(output_dir, input_path.stem, config.export)
    export_results = exporter.export(result, args.format)
    for fmt, path in export_results.items():
        logger.info(f"Exported {fmt}: {path}")

    # Print summary
    elapsed = time.time() - start_time
    stats = text_statistics(result.text)

    if not args.quiet:
        print("\n" + "=" * 60)
        print("CONVERSION COMPLETE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Output: {output_dir}")
        print(f"Pages processed: {result.page_count}")
        print(f"OCR used: {'yes' if result.used_ocr else 'no'}")
        print(f"Processing time: {elapsed:.2f}s")
        print()
        print(f"  Words: {stats['words']:,}")
        print(f"  Characters: {stats['characters']:,}")
        for fmt, path in export_results.items():
            print(f"  {fmt}: {path}")
        print("=" * 60)

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        setup_logging(logging.DEBUG)
    elif args.quiet:
        setup_logging(logging.ERROR)
    else:
        setup_logging(logging.INFO)

    # Check dependencies
    if not check_dependencies(args.format):
        sys.exit(1)

    # Run pipeline
    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
