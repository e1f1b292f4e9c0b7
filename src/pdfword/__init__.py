"""
PDF-to-Word Conversion Pipeline
===============================

Converts PDFs (digital or scanned) into editable Word documents and plain
text, reconstructing paragraphs, headings and tables from positioned text.

Main components:
- Text extraction and digital/scanned page classification
- Layout reconstruction (lines, table detection, headings)
- Text OCR for scanned pages
- Conversion history
- Multi-format export (DOCX, text, Markdown, JSON)
"""

__version__ = "1.0.0"
__author__ = "pdfword contributors"
