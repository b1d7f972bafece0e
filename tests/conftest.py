# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Shared fixtures: a throwaway SQLite database per test and sample feed text."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from coreason_etl_orange_book_resolver.db.session import build_engine, build_session_factory, create_schema

HEADER = (
    "Ingredient~DF;Route~Trade_Name~Applicant~Strength~Appl_Type~Appl_No~Product_No~TE_Code~"
    "Approval_Date~RLD~RS~Type~Applicant_Full_Name"
)
SALIX_ROW = (
    "BUDESONIDE~AEROSOL, FOAM;RECTAL~UCERIS~SALIX~2MG/ACTUATION~N~205613~001~AB~Apr 12, 2023~Yes~Yes~RX~"
    "SALIX PHARMACEUTICALS INC"
)
PATENT_HEADER = (
    "Appl_Type~Appl_No~Product_No~Patent_No~Patent_Expire_Date_Text~Drug_Substance_Flag~Drug_Product_Flag~"
    "Patent_Use_Code~Delist_Flag~Submission_Date"
)
SALIX_PATENT_ROW = "N~205613~001~8765432~Aug 24, 2026~Y~Y~U-141~~Jan 5, 2015"
EXCLUSIVITY_HEADER = "Appl_Type~Appl_No~Product_No~Exclusivity_Code~Exclusivity_Date"
SALIX_EXCLUSIVITY_ROW = "N~205613~001~NCE~Apr 12, 2028"


def make_content(*rows: str) -> str:
    """Build products.txt text from data rows."""
    return "\n".join([HEADER, *rows]) + "\n"


def make_feed(header: str, *rows: str) -> str:
    """Build patent.txt or exclusivity.txt text from a header and data rows."""
    return "\n".join([header, *rows]) + "\n"


@pytest.fixture
def engine(tmp_path: Path) -> Engine:
    """File-backed SQLite engine with the full schema."""
    db_engine = build_engine(f"sqlite:///{tmp_path / 'orange_book_test.db'}")
    create_schema(db_engine)
    return db_engine


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    db_session = session_factory()
    try:
        yield db_session
    finally:
        db_session.close()


@pytest.fixture
def salix_content() -> str:
    return make_content(SALIX_ROW)


@pytest.fixture
def build_content():
    """Factory turning data rows into products.txt text."""
    return make_content


@pytest.fixture
def salix_row() -> str:
    return SALIX_ROW


@pytest.fixture
def salix_patent_content() -> str:
    return make_feed(PATENT_HEADER, SALIX_PATENT_ROW)


@pytest.fixture
def salix_exclusivity_content() -> str:
    return make_feed(EXCLUSIVITY_HEADER, SALIX_EXCLUSIVITY_ROW)


@pytest.fixture
def build_patent_content():
    """Factory turning data rows into patent.txt text."""
    return lambda *rows: make_feed(PATENT_HEADER, *rows)


@pytest.fixture
def build_exclusivity_content():
    """Factory turning data rows into exclusivity.txt text."""
    return lambda *rows: make_feed(EXCLUSIVITY_HEADER, *rows)
