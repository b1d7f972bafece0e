# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Create-or-update of Orange Book applicants and products keyed by natural keys."""

import threading
from collections.abc import Sequence
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.db.models import OrangeBookApplicant, OrangeBookProduct
from coreason_etl_orange_book_resolver.exceptions import ImportCancelledError, PersistenceError
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.silver.models import ApplicantRecord, ProductRecord, normalize_applicant_key
from coreason_etl_orange_book_resolver.utils.cancellation import is_cancelled
from coreason_etl_orange_book_resolver.utils.logger import logger


class UpsertEngine:
    """
    Persists applicants and products for one import run.

    Re-running with the same input never inserts duplicates: existing rows are
    located by natural key and overwritten in place.
    """

    def __init__(
        self,
        session: Session,
        batch_size: int = FdaConfig.PRODUCT_BATCH_SIZE,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Args:
            session: Session scoped to the current run.
            batch_size: Products committed per transaction.
            cancel_event: Set by the caller to request cancellation.
        """
        self.session = session
        self.batch_size = max(1, batch_size)
        self.cancel_event = cancel_event

    def _commit(self, what: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to save {what}: {e}")
            raise PersistenceError(f"Failed to save {what}: {e}") from e

    def upsert_applicants(self, applicants: Sequence[ApplicantRecord], result: ImportResult) -> dict[str, int]:
        """
        Insert new applicants and refresh the full name of existing ones.

        Args:
            applicants: One record per distinct short name.
            result: Run accumulator.

        Returns:
            Mapping of applicant lookup key to applicant_id, covering every
            applicant in the database (not only this file's).

        Raises:
            PersistenceError: If the database rejects the changes.
            ImportCancelledError: If cancellation was requested; rows staged so far are committed first.
        """
        try:
            existing = {a.applicant_key: a for a in self.session.scalars(select(OrangeBookApplicant))}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load applicants: {e}") from e

        created = 0
        updated = 0
        cancelled = False
        for applicant in applicants:
            if is_cancelled(self.cancel_event):
                cancelled = True
                break

            key = applicant.lookup_key
            row = existing.get(key)
            if row is None:
                row = OrangeBookApplicant(
                    applicant_key=key,
                    applicant_name=applicant.short_name.strip(),
                    applicant_full_name=applicant.full_name,
                )
                self.session.add(row)
                existing[key] = row
                created += 1
            elif row.applicant_full_name != applicant.full_name:
                row.applicant_full_name = applicant.full_name
                updated += 1

        self._commit("applicants")
        result.applicants_created += created
        result.applicants_updated += updated

        if cancelled:
            raise ImportCancelledError()

        logger.info(f"Applicants: {created} created, {updated} updated")
        return {key: row.applicant_id for key, row in existing.items()}

    @staticmethod
    def _apply_fields(product: OrangeBookProduct, record: ProductRecord, applicant_id: Optional[int]) -> None:
        product.appl_type = record.appl_type
        product.ingredient = record.ingredient
        product.dosage_form = record.dosage_form
        product.route = record.route
        product.trade_name = record.trade_name
        product.strength = record.strength
        product.te_code = record.te_code
        product.approval_date = record.approval_date
        product.approval_date_is_premarket = record.approval_date_is_premarket
        product.is_rld = record.is_rld
        product.is_rs = record.is_rs
        product.type = record.type
        product.applicant_id = applicant_id

    def upsert_products(
        self,
        records: Sequence[ProductRecord],
        applicant_ids: dict[str, int],
        result: ImportResult,
    ) -> dict[tuple[str, str], int]:
        """
        Insert or overwrite products in batches.

        Counters are added to ``result`` only after each batch commits, so
        they always describe persisted rows.

        Args:
            records: Normalized product rows in file order.
            applicant_ids: Applicant lookup key to applicant_id.
            result: Run accumulator.

        Returns:
            Mapping of (appl_no, product_no) to product_id for every product touched by this run.

        Raises:
            PersistenceError: If a batch cannot be saved.
            ImportCancelledError: If cancellation was requested; the current batch is committed first.
        """
        try:
            existing = {(p.appl_no, p.product_no): p for p in self.session.scalars(select(OrangeBookProduct))}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load products: {e}") from e

        product_ids: dict[tuple[str, str], int] = {}
        total = len(records)

        for batch_no, offset in enumerate(range(0, total, self.batch_size), start=1):
            batch = records[offset : offset + self.batch_size]
            created = 0
            updated = 0
            touched: list[tuple[str, str]] = []
            cancelled = False

            for record in batch:
                if is_cancelled(self.cancel_event):
                    cancelled = True
                    break

                key = record.natural_key
                product = existing.get(key)
                if product is None:
                    product = OrangeBookProduct(appl_no=record.appl_no, product_no=record.product_no)
                    self.session.add(product)
                    existing[key] = product
                    created += 1
                else:
                    updated += 1

                applicant_id = None
                if record.applicant_short_name:
                    applicant_id = applicant_ids.get(normalize_applicant_key(record.applicant_short_name))
                self._apply_fields(product, record, applicant_id)
                touched.append(key)

            self._commit(f"products batch {batch_no}")
            result.products_created += created
            result.products_updated += updated
            result.rows_processed += created + updated
            for key in touched:
                product_ids[key] = existing[key].product_id

            logger.info(
                f"Products batch {batch_no}: {created} created, {updated} updated "
                f"({min(offset + len(batch), total)}/{total} rows processed)"
            )

            if cancelled:
                raise ImportCancelledError()

        return product_ids
