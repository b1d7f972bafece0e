# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Loader for exclusivity.txt."""

import threading
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.db.models import OrangeBookExclusivity
from coreason_etl_orange_book_resolver.feeds import ProductLinkedFeedLoader
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.silver.models import ExclusivityRecord
from coreason_etl_orange_book_resolver.silver.transform import normalize_exclusivity_rows, to_exclusivity_records


class ExclusivityLoader(ProductLinkedFeedLoader):
    """Upserts exclusivity periods keyed by (appl_type, appl_no, product_no, exclusivity_code)."""

    file_name = FdaConfig.FILE_EXCLUSIVITY
    column_count = FdaConfig.EXCLUSIVITY_COLUMN_COUNT
    label = "exclusivity"
    model = OrangeBookExclusivity
    key_columns = ("appl_type", "appl_no", "product_no", "exclusivity_code")

    def to_records(self, rows: list[list[str]]) -> list[ExclusivityRecord]:
        return list(to_exclusivity_records(normalize_exclusivity_rows(rows)))

    def new_row(self, record: ExclusivityRecord) -> OrangeBookExclusivity:
        return OrangeBookExclusivity(
            appl_type=record.appl_type,
            appl_no=record.appl_no,
            product_no=record.product_no,
            exclusivity_code=record.exclusivity_code,
        )

    def apply_fields(self, row: OrangeBookExclusivity, record: ExclusivityRecord, product_id: Optional[int]) -> None:
        row.product_id = product_id
        row.exclusivity_date = record.exclusivity_date

    def add_counts(self, result: ImportResult, created: int, updated: int, linked: int, unlinked: int) -> None:
        result.exclusivity_created += created
        result.exclusivity_updated += updated
        result.exclusivity_linked_to_product += linked
        result.unlinked_exclusivity += unlinked

    def summary_message(self, result: ImportResult) -> str:
        return (
            f"{result.exclusivity_created + result.exclusivity_updated} exclusivity records processed, "
            f"{result.exclusivity_linked_to_product} linked to products."
        )


def import_exclusivity(
    session_factory: sessionmaker[Session],
    file_content: Optional[str],
    result: Optional[ImportResult] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ImportResult:
    """Run an ExclusivityLoader with default settings."""
    return ExclusivityLoader(session_factory).run(file_content, result=result, cancel_event=cancel_event)
