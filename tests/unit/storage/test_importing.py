"""Tests for bulk import line parsing and duplicate detection."""
from flexlist.storage.importing import (
    MAX_BULK_LINES,
    BulkLine,
    clean_title,
    parse_bulk_lines,
    split_duplicates,
)


class TestCleanTitle:
    """Tests for clean_title."""

    def test_trims(self):
        assert clean_title("  Misty  ") == "Misty"

    def test_strips_checkbox_marker(self):
        assert clean_title("[  ] Blue Bossa") == "Blue Bossa"

    def test_other_prefixes_are_kept(self):
        assert clean_title("- Blue Bossa") == "- Blue Bossa"
        assert clean_title("[x] Blue Bossa") == "[x] Blue Bossa"


class TestParseBulkLines:
    """Tests for parse_bulk_lines."""

    def test_splits_multiline_chunks_and_skips_blanks(self):
        parsed = parse_bulk_lines(["Misty\n\n  \n[  ] Solar", "Nardis"])
        assert [line.title for line in parsed.lines] == ["Misty", "Solar", "Nardis"]
        assert parsed.truncated == 0

    def test_keeps_raw_line(self):
        parsed = parse_bulk_lines(["  [  ] Solar  "])
        assert parsed.lines == [BulkLine(raw="  [  ] Solar  ", title="Solar")]

    def test_accepts_a_single_string(self):
        parsed = parse_bulk_lines("Misty\nSolar")
        assert [line.title for line in parsed.lines] == ["Misty", "Solar"]

    def test_splits_on_line_feeds_only(self):
        parsed = parse_bulk_lines(["Misty\r\nSolar\x0cNardis\u2028Blue Bossa"])
        assert [line.title for line in parsed.lines] == [
            "Misty",
            "Solar\x0cNardis\u2028Blue Bossa",
        ]

    def test_truncates_past_the_limit(self):
        titles = [f"Tune {n}" for n in range(MAX_BULK_LINES + 5)]
        parsed = parse_bulk_lines(titles)
        assert len(parsed.lines) == MAX_BULK_LINES
        assert parsed.truncated == 5

    def test_custom_limit_ignores_blank_lines(self):
        parsed = parse_bulk_lines(["a", "", "b", "c"], limit=2)
        assert [line.title for line in parsed.lines] == ["a", "b"]
        assert parsed.truncated == 1


class TestSplitDuplicates:
    """Tests for split_duplicates."""

    def test_existing_titles_are_duplicates(self):
        lines = parse_bulk_lines(["MISTY", "Solar"]).lines
        accepted, duplicates = split_duplicates(lines, ["Misty "])
        assert [line.title for line in accepted] == ["Solar"]
        assert [line.raw for line in duplicates] == ["MISTY"]

    def test_repeats_within_batch_are_duplicates(self):
        lines = parse_bulk_lines(["Solar", " solar "]).lines
        accepted, duplicates = split_duplicates(lines, [])
        assert [line.title for line in accepted] == ["Solar"]
        assert [line.raw for line in duplicates] == [" solar "]
