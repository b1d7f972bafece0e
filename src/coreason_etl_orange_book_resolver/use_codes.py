# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Loader for the patent use code definitions shipped with the package."""

import threading
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coreason_etl_orange_book_resolver.db.models import OrangeBookPatentUseCode
from coreason_etl_orange_book_resolver.db.session import session_scope
from coreason_etl_orange_book_resolver.exceptions import ImportCancelledError
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.utils.cancellation import raise_if_cancelled
from coreason_etl_orange_book_resolver.utils.logger import logger

DATA_DIR = Path(__file__).parent / "data"
USE_CODES_RESOURCE = "patent_use_codes.json"


class PatentUseCodeEntry(BaseModel):
    """One entry of the embedded JSON list (keys ``Code`` and ``Definition``)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: Optional[str] = Field(default=None, alias="Code")
    definition: Optional[str] = Field(default=None, alias="Definition")


_ENTRIES_ADAPTER = TypeAdapter(list[PatentUseCodeEntry])


def load_embedded_use_codes(resource_name: str = USE_CODES_RESOURCE) -> list[PatentUseCodeEntry]:
    """
    Read and validate the packaged use code definitions.

    Args:
        resource_name: File name under the package ``data`` directory.

    Returns:
        The entries in file order.

    Raises:
        FileNotFoundError: If the resource is not packaged.
        pydantic.ValidationError: If the JSON is not a list of entries.
    """
    raw = (DATA_DIR / resource_name).read_text(encoding="utf-8")
    return _ENTRIES_ADAPTER.validate_json(raw)


class PatentUseCodeLoader:
    """Upserts patent use code definitions keyed by code."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def run(
        self,
        result: Optional[ImportResult] = None,
        cancel_event: Optional[threading.Event] = None,
        entries: Optional[list[PatentUseCodeEntry]] = None,
    ) -> ImportResult:
        """
        Insert new codes and refresh definitions that changed.

        Args:
            result: Accumulator to extend; a fresh one is created when omitted.
            cancel_event: Set by the caller to request cancellation.
            entries: Definitions to load; defaults to the packaged dataset.

        Returns:
            The result with patent_use_codes_created / patent_use_codes_updated added.

        Raises:
            ImportCancelledError: If cancellation was observed before the single commit.
        """
        result = result if result is not None else ImportResult()

        try:
            if entries is None:
                entries = load_embedded_use_codes()
        except (OSError, ValidationError) as e:
            logger.error(f"Failed to load patent use code resource: {e}")
            result.add_error("Patent use code JSON resource is empty or could not be deserialized.")
            return result

        if not entries:
            result.add_error("Patent use code JSON resource is empty or could not be deserialized.")
            return result

        logger.info(f"Loaded {len(entries)} patent use code definitions")

        try:
            with session_scope(self.session_factory) as session:
                created, updated = self._upsert(session, entries, cancel_event)
        except ImportCancelledError as e:
            result.cancelled = True
            logger.warning("Patent use code import was cancelled.")
            e.result = result
            raise
        except SQLAlchemyError as e:
            logger.error(f"Failed to save patent use codes: {e}")
            result.add_error(f"Failed to save patent use codes: {e}")
            return result

        result.patent_use_codes_created += created
        result.patent_use_codes_updated += updated
        message = f"{len(entries)} patent use codes processed ({created} created, {updated} updated)."
        result.message = f"{result.message} {message}" if result.message else message
        logger.info(f"Patent use codes: {created} created, {updated} updated")
        return result

    @staticmethod
    def _upsert(
        session: Session,
        entries: list[PatentUseCodeEntry],
        cancel_event: Optional[threading.Event],
    ) -> tuple[int, int]:
        existing = {row.code: row for row in session.scalars(select(OrangeBookPatentUseCode))}
        created = 0
        updated = 0

        for entry in entries:
            raise_if_cancelled(cancel_event)
            code = (entry.code or "").strip()
            definition = (entry.definition or "").strip()
            if not code:
                logger.warning("Skipping patent use code entry with empty code")
                continue

            row = existing.get(code)
            if row is None:
                row = OrangeBookPatentUseCode(code=code, definition=definition)
                session.add(row)
                existing[code] = row
                created += 1
            elif row.definition != definition:
                row.definition = definition
                updated += 1

        session.commit()
        return created, updated
