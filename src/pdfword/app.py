#!/usr/bin/env python
"""
Streamlit Web UI for the PDF-to-Word converter.

Run with:
    streamlit run src/pdfword/app.py

Features:
- Upload PDF files (digital or scanned, up to 20 MB)
- Real-time processing with progress indicator
- Preview of extracted text with word and character counts
- Download results as DOCX, plain text, Markdown or JSON
- Conversion history for the current session
"""

import sys
from pathlib import Path

# Add src directory to path for imports when running as script
_src_dir = Path(__file__).parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

import json
import logging
import tempfile
from typing import Optional

import streamlit as st

from pdfword.config import LayoutConfig, get_config, DEFAULT_HISTORY_PATH
from pdfword.utils.io import format_file_size

logger = logging.getLogger("pdfword.app")

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# Page config must be first Streamlit command
st.set_page_config(
    page_title="PDF to Word",
    page_icon="📄",
    layout="wide",
    initial_sidebar_state="expanded"
)


def load_css():
    """Load custom CSS styles."""
    st.markdown("""
    <style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #1E88E5;
        text-align: center;
        margin-bottom: 1rem;
    }
    .sub-header {
        font-size: 1.2rem;
        color: #888;
        text-align: center;
        margin-bottom: 2rem;
    }
    </style>
    """, unsafe_allow_html=True)


def init_session_state():
    """Initialize session state variables."""
    if "result" not in st.session_state:
        st.session_state.result = None
    if "history_ids" not in st.session_state:
        st.session_state.history_ids = []


@st.cache_resource
def get_store(path: str):
    from pdfword.utils.history import ConversionStore
    return ConversionStore(path)


def render_sidebar() -> dict:
    """Render sidebar settings."""
    st.sidebar.header("⚙️ Settings")

    defaults = get_config()

    st.sidebar.subheader("Layout")
    row_tolerance = st.sidebar.slider(
        "Row tolerance",
        min_value=1.0, max_value=20.0,
        value=float(defaults.layout.row_tolerance), step=0.5,
        help="Max vertical distance (PDF units) for text on the same line"
    )
    col_tolerance = st.sidebar.slider(
        "Column tolerance",
        min_value=4.0, max_value=60.0,
        value=float(defaults.layout.col_tolerance), step=1.0,
        help="Max horizontal distance (PDF units) for text in the same table column"
    )
    min_table_rows = st.sidebar.number_input(
        "Minimum table rows", min_value=1, max_value=20,
        value=defaults.layout.min_table_rows
    )
    min_table_cols = st.sidebar.number_input(
        "Minimum table columns", min_value=1, max_value=20,
        value=defaults.layout.min_table_cols
    )

    st.sidebar.subheader("OCR")
    language = st.sidebar.text_input(
        "Tesseract language", value=defaults.ocr.language,
        help="Used only for scanned pages"
    )
    dpi = st.sidebar.select_slider(
        "Render DPI", options=[150, 200, 300, 400], value=defaults.ocr.dpi
    )

    debug_mode = st.sidebar.checkbox("Debug mode", value=defaults.debug_mode)

    config = defaults
    config.layout = LayoutConfig(
        row_tolerance=row_tolerance,
        col_tolerance=col_tolerance,
        min_table_cols=int(min_table_cols),
        min_table_rows=int(min_table_rows),
        heading_max_len=defaults.layout.heading_max_len,
    )
    config.ocr.language = language or "eng"
    config.ocr.dpi = dpi
    config.debug_mode = debug_mode

    return {"config": config}


def process_document(uploaded_file, settings) -> Optional[dict]:
    """Convert the uploaded PDF."""
    from pdfword.utils.assembler import DocumentAssembler, ConversionError

    config = settings["config"]
    store = get_store(str(config.history_path or DEFAULT_HISTORY_PATH))

    progress_bar = st.progress(0, text="Loading document...")

    def _on_progress(progress):
        label = progress.page_label or progress.stage.title()
        progress_bar.progress(progress.percentage, text=label)

    with tempfile.TemporaryDirectory(prefix="pdfword_") as temp_dir:
        input_path = Path(temp_dir) / uploaded_file.name
        with open(input_path, "wb") as f:
            f.write(uploaded_file.getbuffer())

        assembler = DocumentAssembler(config, store=store, progress_callback=_on_progress)
        try:
            result = assembler.convert(input_path)
        except ConversionError as e:
            logger.error(f"Conversion of {uploaded_file.name} failed: {e}")
            if e.record_id is not None:
                st.session_state.history_ids.append(e.record_id)
            progress_bar.empty()
            st.error(f"Processing error: {e}")
            if config.debug_mode:
                st.exception(e)
            return None

    progress_bar.empty()
    st.session_state.history_ids.append(result.task_id)
    return result.to_dict()


def render_stats(result: dict):
    """Render text statistics."""
    from pdfword.utils.elements import text_statistics

    stats = text_statistics(result.get("text", ""))
    cols = st.columns(4)
    with cols[0]:
        st.metric("Pages", result.get("page_count", 0))
    with cols[1]:
        st.metric("Words", f"{stats['words']:,}")
    with cols[2]:
        st.metric("Characters", f"{stats['characters']:,}")
    with cols[3]:
        st.metric("OCR", "Yes" if result.get("used_ocr") else "No")


def render_downloads(result: dict, settings: dict):
    """Render download buttons."""
    from pdfword.utils.elements import elements_from_dicts
    from pdfword.utils.export import DocxExporter, MarkdownExporter

    st.subheader("📥 Downloads")

    stem = Path(result.get("source_file") or "document").stem
    elements = elements_from_dicts(result.get("elements", []))

    cols = st.columns(4)

    with cols[0]:
        try:
            docx_bytes = DocxExporter(settings["config"].export).to_bytes(elements)
        except ImportError:
            docx_bytes = None
        if docx_bytes:
            st.download_button(
                "📋 DOCX",
                docx_bytes,
                file_name=f"{stem}.docx",
                mime=DOCX_MIME,
                use_container_width=True
            )
        else:
            st.button(
                "📋 DOCX ❌",
                use_container_width=True,
                help="Install python-docx: pip install python-docx",
                disabled=True
            )

    with cols[1]:
        st.download_button(
            "📄 Text",
            result.get("text", ""),
            file_name=f"{stem}.txt",
            mime="text/plain",
            use_container_width=True
        )

    with cols[2]:
        st.download_button(
            "📝 Markdown",
            MarkdownExporter().render(elements),
            file_name=f"{stem}.md",
            mime="text/markdown",
            use_container_width=True
        )

    with cols[3]:
        st.download_button(
            "🧾 JSON",
            json.dumps(result, indent=2, ensure_ascii=False),
            file_name=f"{stem}.json",
            mime="application/json",
            use_container_width=True
        )


def render_history(settings: dict):
    """Render this session's conversions, newest first."""
    from pdfword.utils.export import DocxExporter

    ids = st.session_state.history_ids
    if not ids:
        return

    config = settings["config"]
    store = get_store(str(config.history_path or DEFAULT_HISTORY_PATH))

    st.subheader("🕘 History")
    for record in store.list_recent(ids=ids):
        with st.expander(f"{record.original_filename} · {record.status} · {record.created_at[:19]}"):
            st.caption(format_file_size(record.file_size))
            if record.status == "failed":
                st.error(record.error_message or "Conversion failed")
            elif record.status == "completed" and record.extracted_text is not None:
                st.download_button(
                    "📋 Rebuild DOCX",
                    DocxExporter(config.export).to_bytes(
                        _elements_from_text(record.extracted_text, config)
                    ),
                    file_name=f"{Path(record.original_filename).stem}.docx",
                    mime=DOCX_MIME,
                    key=f"history-{record.id}"
                )


def _elements_from_text(text: str, config):
    from pdfword.utils.export import elements_from_plain_text
    return elements_from_plain_text(text, config.layout)


def main():
    """Main application."""
    load_css()
    init_session_state()

    # Header
    st.markdown('<h1 class="main-header">📄 PDF to Word</h1>', unsafe_allow_html=True)
    st.markdown(
        '<p class="sub-header">Convert digital or scanned PDFs into editable documents</p>',
        unsafe_allow_html=True
    )

    # Sidebar settings
    settings = render_sidebar()
    config = settings["config"]

    st.markdown("---")

    uploaded_file = st.file_uploader(
        "Upload a PDF",
        type=["pdf"],
        help=f"PDF files up to {format_file_size(config.max_file_size)}"
    )

    if uploaded_file:
        col1, col2 = st.columns([2, 1])

        with col1:
            st.info(f"📁 **{uploaded_file.name}** ({format_file_size(uploaded_file.size)})")

        too_large = uploaded_file.size > config.max_file_size
        if too_large:
            st.error(
                f"File is larger than {format_file_size(config.max_file_size)}. "
                f"Please upload a smaller PDF."
            )

        with col2:
            process_btn = st.button(
                "🚀 Convert",
                use_container_width=True,
                type="primary",
                disabled=too_large
            )

        if process_btn:
            with st.spinner("Converting document..."):
                result = process_document(uploaded_file, settings)
                if result:
                    st.session_state.result = result
                    st.success("✅ Document converted successfully!")

    # Display results
    if st.session_state.result:
        result = st.session_state.result

        st.markdown("---")
        render_stats(result)

        tabs = st.tabs(["📖 Text", "📄 Raw JSON"])
        with tabs[0]:
            text = result.get("text", "")
            if text:
                st.text_area("Extracted text", text, height=400)
            else:
                st.info("No text extracted")
        with tabs[1]:
            st.json(result)

        st.markdown("---")
        render_downloads(result, settings)

    st.markdown("---")
    render_history(settings)

    # Footer
    st.markdown("---")
    st.markdown(
        """
        <div style="text-align: center; color: #666; font-size: 0.8rem;">
            PDF to Word |
            Built with Streamlit, PyMuPDF, Tesseract and python-docx
        </div>
        """,
        unsafe_allow_html=True
    )


if __name__ == "__main__":
    main()
