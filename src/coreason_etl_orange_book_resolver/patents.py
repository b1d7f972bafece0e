# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Loader for patent.txt: patents upserted by natural key and linked to their products."""

import threading
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.db.models import OrangeBookPatent
from coreason_etl_orange_book_resolver.feeds import ProductLinkedFeedLoader
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.silver.models import PatentRecord
from coreason_etl_orange_book_resolver.silver.transform import normalize_patent_rows, to_patent_records


class PatentLoader(ProductLinkedFeedLoader):
    """Upserts patents keyed by (appl_type, appl_no, product_no, patent_no)."""

    file_name = FdaConfig.FILE_PATENTS
    column_count = FdaConfig.PATENT_COLUMN_COUNT
    label = "patent"
    model = OrangeBookPatent
    key_columns = ("appl_type", "appl_no", "product_no", "patent_no")

    def to_records(self, rows: list[list[str]]) -> list[PatentRecord]:
        return list(to_patent_records(normalize_patent_rows(rows)))

    def new_row(self, record: PatentRecord) -> OrangeBookPatent:
        return OrangeBookPatent(
            appl_type=record.appl_type,
            appl_no=record.appl_no,
            product_no=record.product_no,
            patent_no=record.patent_no,
        )

    def apply_fields(self, row: OrangeBookPatent, record: PatentRecord, product_id: Optional[int]) -> None:
        row.product_id = product_id
        row.patent_expire_date = record.patent_expire_date
        row.is_drug_substance = record.is_drug_substance
        row.is_drug_product = record.is_drug_product
        row.patent_use_code = record.patent_use_code
        row.is_delisted = record.is_delisted
        row.submission_date = record.submission_date

    def add_counts(self, result: ImportResult, created: int, updated: int, linked: int, unlinked: int) -> None:
        result.patents_created += created
        result.patents_updated += updated
        result.patents_linked_to_product += linked
        result.unlinked_patents += unlinked

    def summary_message(self, result: ImportResult) -> str:
        return (
            f"{result.patents_created + result.patents_updated} patents processed, "
            f"{result.patents_linked_to_product} linked to products."
        )


def import_patents(
    session_factory: sessionmaker[Session],
    file_content: Optional[str],
    result: Optional[ImportResult] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ImportResult:
    """Run a PatentLoader with default settings."""
    return PatentLoader(session_factory).run(file_content, result=result, cancel_event=cancel_event)
