# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Tests for the tilde-delimited line parser."""

from coreason_etl_orange_book_resolver.bronze.parser import parse_lines
from coreason_etl_orange_book_resolver.result import ImportResult

VALID = "A~B;C~D~E~F~N~000001~001~~Jan 1, 2020~No~No~RX~E FULL"


class TestParseLines:
    """Header handling, blank lines and column count validation."""

    def test_header_is_always_discarded(self) -> None:
        result = ImportResult()
        rows = parse_lines(VALID + "\n" + VALID, result)
        assert len(rows) == 1

    def test_valid_row_has_fourteen_fields(self) -> None:
        result = ImportResult()
        rows = parse_lines("header\n" + VALID, result)
        assert rows == [VALID.split("~")]
        assert len(rows[0]) == 14
        assert result.malformed_rows_skipped == 0

    def test_malformed_rows_are_counted(self) -> None:
        """Rows with too few or too many fields are dropped one by one."""
        result = ImportResult()
        content = "\n".join(["header", VALID, "A~B~C", VALID + "~EXTRA", VALID])
        rows = parse_lines(content, result)
        assert len(rows) == 2
        assert result.malformed_rows_skipped == 2

    def test_blank_lines_are_ignored(self) -> None:
        result = ImportResult()
        rows = parse_lines("header\n\n" + VALID + "\n   \n\n", result)
        assert len(rows) == 1
        assert result.malformed_rows_skipped == 0

    def test_crlf_line_endings(self) -> None:
        result = ImportResult()
        rows = parse_lines("header\r\n" + VALID + "\r\n" + VALID + "\r\n", result)
        assert len(rows) == 2
        assert rows[0][-1] == "E FULL"

    def test_header_only(self) -> None:
        result = ImportResult()
        assert parse_lines("header\n", result) == []
        assert result.malformed_rows_skipped == 0

    def test_empty_trailing_fields_are_kept(self) -> None:
        """A row ending in empty fields still has fourteen columns."""
        result = ImportResult()
        rows = parse_lines("header\nA~B~C~D~E~N~1~001~~~~~~", result)
        assert len(rows) == 1
        assert rows[0][13] == ""

    def test_feed_specific_column_count(self) -> None:
        result = ImportResult()
        content = "header\nN~205613~001~NCE~Apr 12, 2028\n" + VALID + "\n"
        rows = parse_lines(content, result, expected_columns=5, file_name="exclusivity.txt")
        assert rows == [["N", "205613", "001", "NCE", "Apr 12, 2028"]]
        assert result.malformed_rows_skipped == 1
