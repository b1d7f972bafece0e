# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Create-or-update loop shared by the patent and exclusivity feeds."""

import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coreason_etl_orange_book_resolver.bronze.parser import parse_lines
from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.db.models import OrangeBookProduct
from coreason_etl_orange_book_resolver.db.session import session_scope
from coreason_etl_orange_book_resolver.exceptions import ImportCancelledError, PersistenceError
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.utils.cancellation import is_cancelled
from coreason_etl_orange_book_resolver.utils.logger import logger

ProductKey = tuple[str, str, str]


def load_product_lookup(session: Session) -> dict[ProductKey, int]:
    """Map (appl_type, appl_no, product_no) to product_id for every stored product."""
    return {
        (appl_type or "", appl_no, product_no): product_id
        for product_id, appl_type, appl_no, product_no in session.execute(
            select(
                OrangeBookProduct.product_id,
                OrangeBookProduct.appl_type,
                OrangeBookProduct.appl_no,
                OrangeBookProduct.product_no,
            )
        )
    }


class ProductLinkedFeedLoader(ABC):
    """
    Loads a product-level feed whose rows are keyed by product plus one code.

    Rows are matched to stored rows by ``key_columns`` and overwritten in
    place, so re-running with the same file never inserts duplicates. Each row
    is linked to the product sharing its (appl_type, appl_no, product_no);
    rows whose product is not on file are still stored, unlinked.

    Subclasses name the feed and describe how a record maps onto its table.
    """

    file_name: str
    column_count: int
    label: str
    model: type
    key_columns: tuple[str, str, str, str]

    def __init__(self, session_factory: sessionmaker[Session], batch_size: int = FdaConfig.FEED_BATCH_SIZE) -> None:
        self.session_factory = session_factory
        self.batch_size = max(1, batch_size)

    @abstractmethod
    def to_records(self, rows: list[list[str]]) -> list[Any]:
        """Normalize parsed rows into typed records."""

    @abstractmethod
    def new_row(self, record: Any) -> Any:
        """Build an unsaved table row carrying the record's natural key."""

    @abstractmethod
    def apply_fields(self, row: Any, record: Any, product_id: Optional[int]) -> None:
        """Copy the non-key fields of a record onto a table row."""

    @abstractmethod
    def add_counts(self, result: ImportResult, created: int, updated: int, linked: int, unlinked: int) -> None:
        """Add one committed batch's counters to the result."""

    @abstractmethod
    def summary_message(self, result: ImportResult) -> str:
        """One sentence appended to ``result.message`` after a successful load."""

    def run(
        self,
        file_content: Optional[str],
        result: Optional[ImportResult] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportResult:
        """
        Parse the feed text and upsert its rows.

        Args:
            file_content: Full text of the feed file.
            result: Accumulator to extend; a fresh one is created when omitted.
            cancel_event: Set by the caller to request cancellation.

        Returns:
            The result with this feed's counters added. Empty content, a file
            without valid rows and database failures are reported as errors.

        Raises:
            ImportCancelledError: If cancellation was observed; committed batches stay saved.
        """
        result = result if result is not None else ImportResult()

        if not file_content or not file_content.strip():
            result.add_error(f"{self.file_name} content is empty.")
            return result

        rows = parse_lines(file_content, result, expected_columns=self.column_count, file_name=self.file_name)
        logger.info(f"Parsed {len(rows)} data rows from {self.file_name}")
        if not rows:
            result.add_error(f"No valid data rows found in {self.file_name}.")
            return result

        records = self.to_records(rows)
        dropped = len(rows) - len(records)
        if dropped:
            result.malformed_rows_skipped += dropped
            logger.warning(f"Skipped {dropped} {self.file_name} rows without a complete key")

        try:
            with session_scope(self.session_factory) as session:
                self._upsert(session, records, result, cancel_event)
        except ImportCancelledError as e:
            result.cancelled = True
            logger.warning(f"{self.label.capitalize()} import was cancelled.")
            e.result = result
            raise
        except PersistenceError as e:
            result.add_error(str(e))
            return result

        message = self.summary_message(result)
        result.message = f"{result.message} {message}" if result.message else message
        logger.info(message)
        return result

    def _natural_key(self, row: Any) -> tuple[str, ...]:
        return tuple(getattr(row, column) for column in self.key_columns)

    def _upsert(
        self,
        session: Session,
        records: Sequence[Any],
        result: ImportResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        try:
            product_ids = load_product_lookup(session)
            existing = {self._natural_key(row): row for row in session.scalars(select(self.model))}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load {self.label} state: {e}") from e

        logger.info(f"Loaded {len(product_ids)} products for {self.label} linking")
        warned: set[ProductKey] = set()
        total = len(records)

        for batch_no, offset in enumerate(range(0, total, self.batch_size), start=1):
            batch = records[offset : offset + self.batch_size]
            created = updated = linked = unlinked = 0
            cancelled = False

            for record in batch:
                if is_cancelled(cancel_event):
                    cancelled = True
                    break

                product_id = product_ids.get(record.product_key)
                if product_id is None:
                    unlinked += 1
                    # One warning per product key
                    if record.product_key not in warned:
                        warned.add(record.product_key)
                        appl_type, appl_no, product_no = record.product_key
                        logger.warning(
                            f"No matching product for {self.label} row: appl_type={appl_type}, "
                            f"appl_no={appl_no}, product_no={product_no}"
                        )
                else:
                    linked += 1

                row = existing.get(record.natural_key)
                if row is None:
                    row = self.new_row(record)
                    session.add(row)
                    existing[record.natural_key] = row
                    created += 1
                else:
                    updated += 1
                self.apply_fields(row, record, product_id)

            try:
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Failed to save {self.label} batch {batch_no}: {e}")
                raise PersistenceError(f"Failed to save {self.label} batch {batch_no}: {e}") from e

            self.add_counts(result, created, updated, linked, unlinked)
            logger.info(
                f"{self.label.capitalize()} batch {batch_no}: {created} created, {updated} updated "
                f"({min(offset + len(batch), total)}/{total} rows processed)"
            )

            if cancelled:
                raise ImportCancelledError()
