"""
Tests for layout reconstruction module.
"""

import math
import pytest
import sys
from collections import Counter
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pdfword.config import LayoutConfig
from pdfword.utils.elements import Paragraph, Table
from pdfword.utils.layout import (
    RawGlyph,
    RawMarker,
    PositionedRun,
    Line,
    BlockKind,
    MalformedInputError,
    is_heading_text,
    normalize_runs,
    group_into_lines,
    try_extract_table,
    segment_into_blocks,
    build_page_elements,
    paragraphs_from_ocr_text,
)

PAGE_HEIGHT = 800.0


def glyph(x, y, text, height=10.0, width=20.0, page_height=PAGE_HEIGHT):
    """Raw glyph whose normalized top edge is ``y``."""
    return RawGlyph(
        text=text,
        transform=(height, 0, 0, height, x, page_height - y - height),
        width=width,
        height=height,
        font_name="Helvetica",
    )


def run(x, y, text):
    return PositionedRun(text=text, x=x, y=y, width=20.0, height=10.0)


@pytest.fixture
def config():
    return LayoutConfig()


class TestHeadingDetection:
    """Test all-caps heading detection."""

    def test_uppercase_is_heading(self):
        assert is_heading_text("INTRODUCTION")

    def test_mixed_case_is_not_heading(self):
        assert not is_heading_text("Introduction")

    def test_digits_only_is_not_heading(self):
        assert not is_heading_text("123")

    def test_empty_is_not_heading(self):
        assert not is_heading_text("")
        assert not is_heading_text("   ")

    def test_length_limit(self):
        assert is_heading_text("A" * 79)
        assert not is_heading_text("A" * 80)
        assert is_heading_text("A" * 80, max_len=81)

    def test_uppercase_with_punctuation(self):
        assert is_heading_text("1. SCOPE & PURPOSE")

    def test_non_latin_capitals_need_ascii_letter(self):
        assert not is_heading_text("ΑΒΓ")
        assert is_heading_text("ÉTÉ A")

    @pytest.mark.parametrize("text", ["  TITLE  ", "\tTitle\n", " 42 ", "SECTION 2 "])
    def test_idempotent_under_trim(self, text):
        assert is_heading_text(text) == is_heading_text(text.strip())


class TestNormalize:
    """Test S1 run normalization."""

    def test_flips_to_top_down(self):
        runs = normalize_runs([glyph(50, 100, "Hello")], PAGE_HEIGHT)

        assert len(runs) == 1
        assert runs[0].x == 50
        assert runs[0].y == 100
        assert runs[0].text == "Hello"
        assert runs[0].font_name == "Helvetica"

    def test_negative_height_is_absolute(self):
        raw = RawGlyph(text="x", transform=(1, 0, 0, 1, 10, 700), width=5, height=-12)
        runs = normalize_runs([raw], PAGE_HEIGHT)

        assert runs[0].height == 12
        assert runs[0].y == PAGE_HEIGHT - 700 - 12

    def test_drops_markers_and_whitespace(self):
        items = [
            RawMarker({"type": "beginMarkedContent"}),
            glyph(10, 10, "   "),
            glyph(10, 10, ""),
            glyph(10, 10, "kept"),
            {"type": "endMarkedContent"},
        ]
        runs = normalize_runs(items, PAGE_HEIGHT)

        assert [r.text for r in runs] == ["kept"]

    def test_accepts_extractor_dicts(self):
        item = {
            "str": "Total",
            "transform": [12, 0, 0, 12, 72, 700],
            "width": 30,
            "height": 12,
            "fontName": "g_d0_f1",
        }
        runs = normalize_runs([item], PAGE_HEIGHT)

        assert runs[0].text == "Total"
        assert runs[0].x == 72
        assert runs[0].y == PAGE_HEIGHT - 700 - 12
        assert runs[0].font_name == "g_d0_f1"

    def test_preserves_input_order(self):
        runs = normalize_runs([glyph(100, 50, "b"), glyph(10, 10, "a")], PAGE_HEIGHT)
        assert [r.text for r in runs] == ["b", "a"]

    def test_text_kept_verbatim(self):
        runs = normalize_runs([glyph(0, 0, "  a\tb  ")], PAGE_HEIGHT)
        assert runs[0].text == "  a\tb  "

    def test_empty_input(self):
        assert normalize_runs([], PAGE_HEIGHT) == []

    @pytest.mark.parametrize("height", [0, -1, float("nan"), float("inf"), "800", None, True])
    def test_malformed_page_height(self, height):
        with pytest.raises(MalformedInputError):
            normalize_runs([glyph(0, 0, "x")], height)

    def test_malformed_input_is_value_error(self):
        with pytest.raises(ValueError):
            build_page_elements([], 0)


class TestLineGrouping:
    """Test S2 line grouping."""

    def test_empty(self, config):
        assert group_into_lines([], config) == []

    def test_sorts_lines_and_items(self, config):
        runs = [run(150, 30, "D"), run(50, 10, "A"), run(50, 30, "C"), run(150, 10, "B")]
        lines = group_into_lines(runs, config)

        assert [line.y for line in lines] == [10, 30]
        assert [[i.text for i in line.items] for line in lines] == [["A", "B"], ["C", "D"]]

    def test_tolerance_measured_from_first_member(self, config):
        # 10 -> 13 joins, 13 -> 16 is within 4 of 13 but not of 10
        runs = [run(0, 10, "a"), run(20, 13, "b"), run(40, 16, "c")]
        lines = group_into_lines(runs, config)

        assert [line.text for line in lines] == ["a b", "c"]
        for line in lines:
            for item in line.items:
                assert abs(item.y - line.y) <= config.row_tolerance

    def test_identical_positions_keep_input_order(self, config):
        runs = [run(10, 10, "first"), run(10, 10, "second"), run(10, 10, "third")]
        lines = group_into_lines(runs, config)

        assert len(lines) == 1
        assert [i.text for i in lines[0].items] == ["first", "second", "third"]

    def test_line_text_joins_with_space(self):
        line = Line(y=0, items=[run(0, 0, " Hello"), run(10, 0, "world ")])
        assert line.text == "Hello world"


class TestBlockSegmentation:
    """Test S3 table extraction and segmentation."""

    def _lines(self, rows):
        return group_into_lines([run(x, y, t) for x, y, t in rows])

    def test_extract_two_row_table(self, config):
        lines = self._lines([(50, 10, "A"), (150, 10, "B"), (50, 30, "C"), (150, 30, "D")])
        table = try_extract_table(lines, 0, config)

        assert table is not None
        assert len(table) == 2

    def test_single_line_is_not_table(self, config):
        lines = self._lines([(50, 10, "A"), (150, 10, "B")])
        assert try_extract_table(lines, 0, config) is None

    def test_first_line_needs_distinct_columns(self, config):
        # Two items inside one bucket
        lines = self._lines([(50, 10, "A"), (60, 10, "B"), (50, 30, "C"), (60, 30, "D")])
        assert try_extract_table(lines, 0, config) is None

    def test_start_offset(self, config):
        lines = self._lines([
            (50, 0, "Title"),
            (50, 10, "A"), (150, 10, "B"),
            (50, 30, "C"), (150, 30, "D"),
        ])
        assert try_extract_table(lines, 0, config) is None
        assert len(try_extract_table(lines, 1, config)) == 2

    def test_coverage(self, config):
        lines = self._lines([
            (50, 0, "Heading"),
            (50, 20, "a"), (150, 20, "b"),
            (50, 40, "c"), (150, 40, "d"),
            (50, 60, "tail"),
            (50, 80, "x"), (300, 80, "y"),
        ])
        blocks = segment_into_blocks(lines, config)

        covered = [line for block in blocks for line in block.lines]
        assert covered == lines
        assert [b.kind for b in blocks] == [
            BlockKind.PARAGRAPH, BlockKind.TABLE, BlockKind.PARAGRAPH, BlockKind.PARAGRAPH
        ]

    def test_paragraph_blocks_are_single_lines(self, config):
        lines = self._lines([(0, 0, "one"), (0, 20, "two")])
        blocks = segment_into_blocks(lines, config)

        assert all(len(b.lines) == 1 for b in blocks)


class TestScenarios:
    """End-to-end page reconstruction scenarios."""

    def test_two_aligned_rows_become_table(self, config):
        items = [glyph(50, 10, "A"), glyph(150, 10, "B"), glyph(50, 30, "C"), glyph(150, 30, "D")]
        elements = build_page_elements(items, PAGE_HEIGHT, config)

        assert elements == [Table(rows=[["A", "B"], ["C", "D"]], col_count=2)]

    def test_column_drift_within_tolerance(self):
        items = [glyph(50, 10, "A"), glyph(150, 10, "B"), glyph(52, 30, "C"), glyph(165, 30, "D")]
        elements = build_page_elements(items, PAGE_HEIGHT, LayoutConfig(col_tolerance=18))

        assert elements == [Table(rows=[["A", "B"], ["C", "D"]], col_count=2)]

    def test_column_drift_beyond_tolerance(self):
        items = [glyph(50, 10, "A"), glyph(150, 10, "B"), glyph(52, 30, "C"), glyph(165, 30, "D")]
        elements = build_page_elements(items, PAGE_HEIGHT, LayoutConfig(col_tolerance=10))

        assert elements == [Paragraph("A B"), Paragraph("C D")]

    @pytest.mark.parametrize("text,expected", [
        ("INTRODUCTION", True),
        ("Introduction", False),
        ("123", False),
    ])
    def test_heading_detection(self, config, text, expected):
        elements = build_page_elements([glyph(72, 72, text)], PAGE_HEIGHT, config)
        assert elements == [Paragraph(text, is_heading=expected)]

    def test_single_column_list_is_not_table(self, config):
        items = [glyph(50, y, f"item {y}") for y in (10, 30, 50, 70)]
        elements = build_page_elements(items, PAGE_HEIGHT, config)

        assert len(elements) == 4
        assert all(isinstance(e, Paragraph) for e in elements)

    def test_table_interrupted_by_short_row(self, config):
        items = []
        for y in (10, 30, 50):
            items += [glyph(50, y, f"k{y}"), glyph(150, y, f"v{y}")]
        items.append(glyph(50, 70, "Footnote"))

        elements = build_page_elements(items, PAGE_HEIGHT, config)

        assert elements == [
            Table(rows=[["k10", "v10"], ["k30", "v30"], ["k50", "v50"]], col_count=2),
            Paragraph("Footnote"),
        ]

    def test_single_run_yields_trimmed_paragraph(self, config):
        elements = build_page_elements([glyph(10, 10, "  just text  ")], PAGE_HEIGHT, config)
        assert elements == [Paragraph("just text")]

    def test_empty_page(self, config):
        assert build_page_elements([], PAGE_HEIGHT, config) == []
        assert build_page_elements([RawMarker()], PAGE_HEIGHT, config) == []

    def test_runs_in_one_cell_are_joined(self, config):
        items = [
            glyph(50, 10, "Name"), glyph(150, 10, "Total"),
            glyph(50, 30, "Widget"), glyph(150, 30, "12"), glyph(160, 30, "USD"),
        ]
        elements = build_page_elements(items, PAGE_HEIGHT, config)

        assert elements == [Table(rows=[["Name", "Total"], ["Widget", "12 USD"]], col_count=2)]

    def test_missing_cells_are_empty(self, config):
        items = [
            glyph(50, 10, "a"), glyph(150, 10, "b"), glyph(250, 10, "c"),
            glyph(50, 30, "d"), glyph(250, 30, "f"),
        ]
        elements = build_page_elements(items, PAGE_HEIGHT, config)

        assert elements == [Table(rows=[["a", "b", "c"], ["d", "", "f"]], col_count=3)]

    def test_control_characters_pass_through(self, config):
        assert build_page_elements([glyph(10, 10, "a\x07b")], PAGE_HEIGHT, config) == [
            Paragraph("a\x07b")
        ]

        items = [
            glyph(50, 10, "x\x01"), glyph(150, 10, "y"),
            glyph(50, 30, "\x02z"), glyph(150, 30, "w"),
        ]
        elements = build_page_elements(items, PAGE_HEIGHT, config)

        assert elements == [Table(rows=[["x\x01", "y"], ["\x02z", "w"]], col_count=2)]

    def test_out_of_page_coordinates_tolerated(self, config):
        items = [glyph(-20, -50, "above"), glyph(10, 2000, "below")]
        elements = build_page_elements(items, PAGE_HEIGHT, config)

        assert [e.text for e in elements] == ["above", "below"]


class TestInvariants:
    """Properties that hold for any page."""

    @pytest.fixture
    def mixed_page(self):
        items = [glyph(72, 40, "QUARTERLY REPORT")]
        for i, y in enumerate((80, 100, 120, 140)):
            items += [glyph(72, y, f"Region {i}"), glyph(200, y, f"{i * 10}"), glyph(320, y, "ok")]
        items += [glyph(72, 180, "Figures are unaudited."), glyph(72, 200, "Page 1")]
        return items

    def test_table_shape(self, mixed_page, config):
        tables = [e for e in build_page_elements(mixed_page, PAGE_HEIGHT, config) if isinstance(e, Table)]

        assert tables
        for table in tables:
            assert table.col_count >= config.min_table_cols
            assert table.num_rows >= config.min_table_rows
            assert all(len(row) == table.col_count for row in table.rows)

    def test_no_phantom_text(self, mixed_page, config):
        elements = build_page_elements(mixed_page, PAGE_HEIGHT, config)

        def chars(texts):
            return Counter(c for t in texts for c in t if not c.isspace())

        out = []
        for e in elements:
            out += [c for row in e.rows for c in row] if isinstance(e, Table) else [e.text]
        produced = chars(out)
        available = chars(g.text for g in mixed_page)

        assert not produced - available

    def test_raising_thresholds_never_creates_tables(self, mixed_page):
        base = build_page_elements(mixed_page, PAGE_HEIGHT, LayoutConfig())
        base_tables = sum(isinstance(e, Table) for e in base)

        for stricter in (LayoutConfig(min_table_rows=5), LayoutConfig(min_table_cols=4)):
            elements = build_page_elements(mixed_page, PAGE_HEIGHT, stricter)
            assert sum(isinstance(e, Table) for e in elements) <= base_tables

        strict = build_page_elements(mixed_page, PAGE_HEIGHT, LayoutConfig(min_table_rows=5))
        assert not any(isinstance(e, Table) for e in strict)

    def test_deterministic(self, mixed_page, config):
        first = build_page_elements(mixed_page, PAGE_HEIGHT, config)
        second = build_page_elements(list(mixed_page), PAGE_HEIGHT, config)
        assert first == second


class TestOCRParagraphs:
    """Test scanned page text to paragraphs."""

    def test_one_paragraph_per_line(self):
        paragraphs = paragraphs_from_ocr_text("SUMMARY\n\n  First line  \nSecond line\n")

        assert paragraphs == [
            Paragraph("SUMMARY", is_heading=True),
            Paragraph("First line"),
            Paragraph("Second line"),
        ]

    def test_empty_text(self):
        assert paragraphs_from_ocr_text("") == []
        assert paragraphs_from_ocr_text("\n \n\t") == []
