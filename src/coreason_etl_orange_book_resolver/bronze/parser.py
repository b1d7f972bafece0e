# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Line parsing for the raw tilde-delimited Orange Book feeds."""

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.utils.logger import logger


def parse_lines(
    file_content: str,
    result: ImportResult,
    expected_columns: int = FdaConfig.EXPECTED_COLUMN_COUNT,
    file_name: str = FdaConfig.FILE_PRODUCTS,
) -> list[list[str]]:
    """
    Split raw file text into validated field lists.

    The first line is the header and is always discarded. Blank lines are
    ignored. A line that does not split into exactly ``expected_columns``
    fields is dropped and counted in ``result.malformed_rows_skipped``.

    Args:
        file_content: Full text of the feed file.
        result: Run accumulator receiving the malformed row count.
        expected_columns: Column count of the feed (14 for products.txt).
        file_name: Feed name used in warnings.

    Returns:
        Field lists in file order.
    """
    rows: list[list[str]] = []
    lines = file_content.split("\n")

    for line_idx, raw_line in enumerate(lines[1:], start=2):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue

        fields = line.split(FdaConfig.DELIMITER)
        if len(fields) != expected_columns:
            result.malformed_rows_skipped += 1
            logger.warning(
                f"Skipping malformed {file_name} row {line_idx}: expected {expected_columns} columns, "
                f"got {len(fields)}"
            )
            continue

        rows.append(fields)

    return rows
