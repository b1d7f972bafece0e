# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Orchestration of one products.txt import run."""

import threading
from collections.abc import Iterable
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from coreason_etl_orange_book_resolver.bronze.parser import parse_lines
from coreason_etl_orange_book_resolver.config import FdaConfig, ResolverConfig
from coreason_etl_orange_book_resolver.db.session import session_scope
from coreason_etl_orange_book_resolver.exceptions import ImportCancelledError, PersistenceError
from coreason_etl_orange_book_resolver.gold.resolver import EntityResolver
from coreason_etl_orange_book_resolver.gold.upsert import UpsertEngine
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.silver.models import ApplicantRecord, ProductRecord
from coreason_etl_orange_book_resolver.silver.transform import (
    extract_applicants,
    normalize_rows,
    split_ingredients,
    to_product_records,
)
from coreason_etl_orange_book_resolver.utils.cancellation import raise_if_cancelled
from coreason_etl_orange_book_resolver.utils.logger import logger


def build_product_ingredient_map(
    records: Iterable[ProductRecord], product_ids: dict[tuple[str, str], int]
) -> dict[int, list[str]]:
    """Map each persisted product to the ingredient names listed on its row."""
    mapping: dict[int, list[str]] = {}
    for record in records:
        product_id = product_ids.get(record.natural_key)
        if product_id is None:
            continue
        ingredients = split_ingredients(record.ingredient)
        if ingredients:
            mapping[product_id] = ingredients
    return mapping


def build_product_app_number_map(
    records: Iterable[ProductRecord], product_ids: dict[tuple[str, str], int]
) -> dict[int, tuple[str, str]]:
    """Map each persisted product to (prefixed application number, bare appl_no)."""
    mapping: dict[int, tuple[str, str]] = {}
    for record in records:
        product_id = product_ids.get(record.natural_key)
        if product_id is not None and record.appl_no:
            mapping[product_id] = (record.application_number, record.appl_no)
    return mapping


class OrangeBookProductImporter:
    """
    Imports products.txt and reconciles it with the label reference tables.

    Stages run strictly in order: parse, normalize, upsert applicants and
    products, then link organizations, ingredient substances and marketing
    categories. A database failure aborts the remaining stages; the caller
    always gets an ImportResult back, either returned or attached to
    ImportCancelledError.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: Optional[ResolverConfig] = None,
        batch_size: int = FdaConfig.PRODUCT_BATCH_SIZE,
    ) -> None:
        self.session_factory = session_factory
        self.config = config or ResolverConfig()
        self.batch_size = batch_size

    def run(self, file_content: Optional[str], cancel_event: Optional[threading.Event] = None) -> ImportResult:
        """
        Run one import.

        Args:
            file_content: Full text of products.txt, header included.
            cancel_event: Set by the caller to request cancellation.

        Returns:
            The accumulated ImportResult.

        Raises:
            ImportCancelledError: If cancellation was observed. Work committed so
                far is kept and ``error.result`` holds the partial result.
        """
        result = ImportResult()

        if not file_content or not file_content.strip():
            logger.warning("products.txt content is empty, nothing to import")
            result.add_error("File content is empty.")
            result.message = "No content to process."
            return result

        try:
            raise_if_cancelled(cancel_event)
            rows = parse_lines(file_content, result)
            if not rows:
                logger.error("No valid data rows found in products.txt")
                result.add_error("No valid data rows found in products.txt.")
                result.message = "No valid data rows found."
                return result

            raise_if_cancelled(cancel_event)
            records = list(to_product_records(normalize_rows(rows)))
            applicants = extract_applicants(records)
            logger.info(f"Parsed {len(records)} products from {len(applicants)} applicants")

            with session_scope(self.session_factory) as session:
                self._run_stages(session, records, applicants, result, cancel_event)

        except ImportCancelledError as e:
            result.cancelled = True
            result.message = f"Import cancelled. Persisted so far: {result.summary()}"
            logger.warning(result.message)
            e.result = result
            raise
        except PersistenceError as e:
            logger.error(f"Import aborted: {e}")
            result.add_error(str(e))
        except Exception as e:
            logger.exception(f"Critical error during Orange Book import: {e}")
            result.add_error(f"Critical error: {e}")

        if result.success:
            result.message = f"Import complete: {result.summary()}"
            logger.info(result.message)
        else:
            result.message = f"Import finished with {len(result.errors)} error(s). {result.summary()}"
            logger.warning(result.message)
        return result

    def _run_stages(
        self,
        session: Session,
        records: list[ProductRecord],
        applicants: list[ApplicantRecord],
        result: ImportResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        upsert = UpsertEngine(session, batch_size=self.batch_size, cancel_event=cancel_event)
        applicant_ids = upsert.upsert_applicants(applicants, result)

        raise_if_cancelled(cancel_event)
        product_ids = upsert.upsert_products(records, applicant_ids, result)

        resolver = EntityResolver(session, config=self.config, cancel_event=cancel_event)

        raise_if_cancelled(cancel_event)
        run_applicant_ids = {applicant_ids[a.lookup_key] for a in applicants if a.lookup_key in applicant_ids}
        resolver.resolve_organizations(run_applicant_ids, result)

        raise_if_cancelled(cancel_event)
        resolver.resolve_ingredients(build_product_ingredient_map(records, product_ids), result)

        raise_if_cancelled(cancel_event)
        resolver.resolve_marketing_categories(build_product_app_number_map(records, product_ids), result)


def import_products(
    session_factory: sessionmaker[Session],
    file_content: Optional[str],
    cancel_event: Optional[threading.Event] = None,
    config: Optional[ResolverConfig] = None,
) -> ImportResult:
    """Convenience wrapper around OrangeBookProductImporter.run."""
    return OrangeBookProductImporter(session_factory, config=config).run(file_content, cancel_event=cancel_event)
