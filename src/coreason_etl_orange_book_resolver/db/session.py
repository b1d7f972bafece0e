# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Database engine and session factory."""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import Engine, create_engine, delete
from sqlalchemy.orm import Session, sessionmaker

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.db.models import ORANGE_BOOK_TABLES, Base
from coreason_etl_orange_book_resolver.utils.logger import logger


def resolve_database_url(database_url: Optional[str] = None) -> str:
    """Explicit URL, else the ORANGE_BOOK_DATABASE_URL environment variable, else local SQLite."""
    return database_url or os.getenv(FdaConfig.DATABASE_URL_ENV, FdaConfig.DEFAULT_DATABASE_URL)


def build_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create the SQLAlchemy engine.

    Args:
        database_url: SQLAlchemy URL; see resolve_database_url for the fallback chain.
        echo: Log emitted SQL.

    Returns:
        Engine bound to the resolved URL.
    """
    url = resolve_database_url(database_url)
    logger.debug(f"Creating database engine for {url.split('@')[-1]}")
    return create_engine(url, echo=echo)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory used once per import run."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(engine)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Provide a session whose lifetime is bound to one run.

    Work is committed by the caller at batch boundaries; anything left
    uncommitted when an exception escapes is rolled back.
    """
    session = session_factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def truncate_orange_book_tables(session: Session) -> None:
    """Delete all rows owned by the Orange Book import (reference tables are untouched)."""
    for table in ORANGE_BOOK_TABLES:
        deleted = session.execute(delete(table)).rowcount
        logger.info(f"Truncated {table.__tablename__}: {deleted} rows deleted")
    session.commit()
