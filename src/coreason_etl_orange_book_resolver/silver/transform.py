# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Field normalization for parsed Orange Book rows using Polars."""

from collections.abc import Iterable, Iterator
from datetime import date, datetime
from typing import Optional

import polars as pl

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.silver.models import (
    ApplicantRecord,
    ExclusivityRecord,
    PatentRecord,
    ProductRecord,
)
from coreason_etl_orange_book_resolver.utils.logger import logger

# Column order of products.txt
RAW_COLUMNS: list[str] = [
    "ingredient",
    "df_route",
    "trade_name",
    "applicant",
    "strength",
    "appl_type",
    "appl_no",
    "product_no",
    "te_code",
    "approval_date",
    "rld",
    "rs",
    "type",
    "applicant_full_name",
]

SILVER_SCHEMA: dict[str, pl.DataType] = {
    "ingredient": pl.String(),
    "dosage_form": pl.String(),
    "route": pl.String(),
    "trade_name": pl.String(),
    "strength": pl.String(),
    "appl_type": pl.String(),
    "appl_type_prefix": pl.String(),
    "appl_no": pl.String(),
    "product_no": pl.String(),
    "te_code": pl.String(),
    "approval_date": pl.Date(),
    "approval_date_is_premarket": pl.Boolean(),
    "is_rld": pl.Boolean(),
    "is_rs": pl.Boolean(),
    "type": pl.String(),
    "applicant_short_name": pl.String(),
    "applicant_full_name": pl.String(),
}


def split_df_route(value: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Split a combined "DF;Route" value into dosage form and route.

    The split happens on the last semicolon, since dosage forms may contain
    commas ("AEROSOL, FOAM") but the route never contains a semicolon.

    Args:
        value: Raw DF;Route column value.

    Returns:
        (dosage_form, route), each None when empty.
    """
    if not value or not value.strip():
        return None, None

    trimmed = value.strip()
    separator_idx = trimmed.rfind(FdaConfig.DF_ROUTE_SEPARATOR)
    if separator_idx < 0:
        return trimmed, None

    dosage_form = trimmed[:separator_idx].strip()
    route = trimmed[separator_idx + 1 :].strip()
    return (dosage_form or None, route or None)


def is_premarket_date(value: Optional[str]) -> bool:
    """Check for the 'Approved Prior to Jan 1, 1982' sentinel."""
    return bool(value) and value.strip().lower() == FdaConfig.PREMARKET_DATE_TEXT.lower()


def parse_approval_date(value: Optional[str]) -> tuple[Optional[date], bool]:
    """
    Parse an Orange Book approval date.

    Args:
        value: Date text such as "Apr 12, 2023", the pre-market sentinel, or empty.

    Returns:
        (approval_date, is_premarket). Unparseable values yield (None, False)
        and are logged.
    """
    if not value or not value.strip():
        return None, False

    if is_premarket_date(value):
        return None, True

    trimmed = value.strip()
    for fmt in FdaConfig.APPROVAL_DATE_FORMATS:
        try:
            return datetime.strptime(trimmed, fmt).date(), False
        except ValueError:
            continue

    logger.warning(f"Could not parse approval date: '{trimmed}'")
    return None, False


def map_appl_type_to_prefix(code: Optional[str]) -> str:
    """
    Map an application type code to its application number prefix.

    "N" maps to "NDA" and "A" to "ANDA"; any other code (e.g. "BLA") is
    returned trimmed and otherwise unchanged.
    """
    trimmed = (code or "").strip()
    return FdaConfig.APPL_TYPE_PREFIXES.get(trimmed.upper(), trimmed)


def parse_yes_no(value: Optional[str]) -> bool:
    """'Yes' in any case is True; everything else, including junk, is False."""
    return bool(value) and value.strip().lower() == "yes"


def split_ingredients(value: Optional[str]) -> list[str]:
    """
    Split a multi-ingredient field ("A; B") into distinct ingredient names.

    Duplicates are removed case-insensitively, keeping first-seen order.
    """
    if not value:
        return []

    seen: set[str] = set()
    ingredients: list[str] = []
    for part in value.split(FdaConfig.INGREDIENT_SEPARATOR):
        name = part.strip()
        if not name or name.upper() in seen:
            continue
        seen.add(name.upper())
        ingredients.append(name)
    return ingredients


def _null_if_blank(name: str) -> pl.Expr:
    return pl.when(pl.col(name) == "").then(pl.lit(None, dtype=pl.String)).otherwise(pl.col(name))


def normalize_rows(rows: list[list[str]]) -> pl.DataFrame:
    """
    Derive typed product columns from parsed rows.

    Args:
        rows: Field lists as returned by the line parser.

    Returns:
        Polars DataFrame matching SILVER_SCHEMA, one row per input row.
    """
    if not rows:
        return pl.DataFrame(schema=SILVER_SCHEMA)

    logger.info(f"Normalizing {len(rows)} product rows")
    df = pl.DataFrame(rows, schema={c: pl.String for c in RAW_COLUMNS}, orient="row")

    # Global string cleaning for values
    df = df.with_columns(pl.all().str.strip_chars())

    df_silver = df.select(
        [
            _null_if_blank("ingredient").alias("ingredient"),
            pl.col("df_route")
            .map_elements(lambda x: split_df_route(x)[0], return_dtype=pl.String)
            .alias("dosage_form"),
            pl.col("df_route").map_elements(lambda x: split_df_route(x)[1], return_dtype=pl.String).alias("route"),
            _null_if_blank("trade_name").alias("trade_name"),
            _null_if_blank("strength").alias("strength"),
            pl.col("appl_type"),
            pl.col("appl_type").map_elements(map_appl_type_to_prefix, return_dtype=pl.String).alias("appl_type_prefix"),
            pl.col("appl_no"),
            pl.col("product_no"),
            _null_if_blank("te_code").alias("te_code"),
            pl.col("approval_date")
            .map_elements(lambda x: parse_approval_date(x)[0], return_dtype=pl.Date)
            .alias("approval_date"),
            (pl.col("approval_date").str.to_lowercase() == FdaConfig.PREMARKET_DATE_TEXT.lower())
            .fill_null(False)
            .alias("approval_date_is_premarket"),
            pl.when(pl.col("rld").str.to_uppercase() == "YES").then(True).otherwise(False).alias("is_rld"),
            pl.when(pl.col("rs").str.to_uppercase() == "YES").then(True).otherwise(False).alias("is_rs"),
            _null_if_blank("type").alias("type"),
            _null_if_blank("applicant").alias("applicant_short_name"),
            _null_if_blank("applicant_full_name").alias("applicant_full_name"),
        ]
    )

    return df_silver.cast(SILVER_SCHEMA)  # type: ignore[arg-type]


def to_product_records(df: pl.DataFrame) -> Iterator[ProductRecord]:
    """Yield validated ProductRecord models from a normalized DataFrame."""
    for row in df.iter_rows(named=True):
        yield ProductRecord(**row)


def extract_applicants(records: Iterable[ProductRecord]) -> list[ApplicantRecord]:
    """
    Collapse product rows into one applicant per normalized short name.

    The first spelling of the short name is kept; the first non-empty full
    name encountered wins.

    Args:
        records: Normalized product records.

    Returns:
        Applicants in first-seen order.
    """
    applicants: dict[str, ApplicantRecord] = {}
    for record in records:
        if not record.applicant_short_name:
            continue

        candidate = ApplicantRecord(short_name=record.applicant_short_name, full_name=record.applicant_full_name)
        existing = applicants.get(candidate.lookup_key)
        if existing is None:
            applicants[candidate.lookup_key] = candidate
        elif existing.full_name is None and candidate.full_name:
            applicants[candidate.lookup_key] = existing.model_copy(update={"full_name": candidate.full_name})

    return list(applicants.values())


# Column order of patent.txt
PATENT_COLUMNS: list[str] = [
    "appl_type",
    "appl_no",
    "product_no",
    "patent_no",
    "patent_expire_date",
    "drug_substance_flag",
    "drug_product_flag",
    "patent_use_code",
    "delist_flag",
    "submission_date",
]

PATENT_SCHEMA: dict[str, pl.DataType] = {
    "appl_type": pl.String(),
    "appl_no": pl.String(),
    "product_no": pl.String(),
    "patent_no": pl.String(),
    "patent_expire_date": pl.Date(),
    "is_drug_substance": pl.Boolean(),
    "is_drug_product": pl.Boolean(),
    "patent_use_code": pl.String(),
    "is_delisted": pl.Boolean(),
    "submission_date": pl.Date(),
}

# Column order of exclusivity.txt
EXCLUSIVITY_COLUMNS: list[str] = ["appl_type", "appl_no", "product_no", "exclusivity_code", "exclusivity_date"]

EXCLUSIVITY_SCHEMA: dict[str, pl.DataType] = {
    "appl_type": pl.String(),
    "appl_no": pl.String(),
    "product_no": pl.String(),
    "exclusivity_code": pl.String(),
    "exclusivity_date": pl.Date(),
}


def parse_feed_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a patent or exclusivity date such as "Aug 24, 2026" or "Feb 1, 2027".

    Empty values yield None silently; anything else that does not parse is
    logged and yields None.
    """
    if not value or not value.strip():
        return None

    trimmed = value.strip()
    for fmt in FdaConfig.FEED_DATE_FORMATS:
        try:
            return datetime.strptime(trimmed, fmt).date()
        except ValueError:
            continue

    logger.warning(f"Could not parse feed date: '{trimmed}'")
    return None


def _y_flag(name: str) -> pl.Expr:
    return pl.when(pl.col(name).str.to_uppercase() == "Y").then(True).otherwise(False)


def normalize_patent_rows(rows: list[list[str]]) -> pl.DataFrame:
    """
    Derive typed patent columns from parsed patent.txt rows.

    Rows without an application number, product number or patent number
    cannot be keyed and are dropped.

    Args:
        rows: Field lists as returned by the line parser.

    Returns:
        Polars DataFrame matching PATENT_SCHEMA.
    """
    if not rows:
        return pl.DataFrame(schema=PATENT_SCHEMA)

    logger.info(f"Normalizing {len(rows)} patent rows")
    df = pl.DataFrame(rows, schema={c: pl.String for c in PATENT_COLUMNS}, orient="row")
    df = df.with_columns(pl.all().str.strip_chars())

    df_silver = df.select(
        [
            pl.col("appl_type"),
            pl.col("appl_no"),
            pl.col("product_no"),
            pl.col("patent_no"),
            pl.col("patent_expire_date").map_elements(parse_feed_date, return_dtype=pl.Date),
            _y_flag("drug_substance_flag").alias("is_drug_substance"),
            _y_flag("drug_product_flag").alias("is_drug_product"),
            _null_if_blank("patent_use_code").alias("patent_use_code"),
            _y_flag("delist_flag").alias("is_delisted"),
            pl.col("submission_date").map_elements(parse_feed_date, return_dtype=pl.Date),
        ]
    )

    return df_silver.filter(
        (pl.col("appl_no") != "") & (pl.col("product_no") != "") & (pl.col("patent_no") != "")
    ).cast(PATENT_SCHEMA)  # type: ignore[arg-type]


def normalize_exclusivity_rows(rows: list[list[str]]) -> pl.DataFrame:
    """Derive typed exclusivity columns; rows without a full key are dropped."""
    if not rows:
        return pl.DataFrame(schema=EXCLUSIVITY_SCHEMA)

    logger.info(f"Normalizing {len(rows)} exclusivity rows")
    df = pl.DataFrame(rows, schema={c: pl.String for c in EXCLUSIVITY_COLUMNS}, orient="row")
    df = df.with_columns(pl.all().str.strip_chars())

    df_silver = df.select(
        [
            pl.col("appl_type"),
            pl.col("appl_no"),
            pl.col("product_no"),
            pl.col("exclusivity_code"),
            pl.col("exclusivity_date").map_elements(parse_feed_date, return_dtype=pl.Date),
        ]
    )

    return df_silver.filter(
        (pl.col("appl_no") != "") & (pl.col("product_no") != "") & (pl.col("exclusivity_code") != "")
    ).cast(EXCLUSIVITY_SCHEMA)  # type: ignore[arg-type]


def to_patent_records(df: pl.DataFrame) -> Iterator[PatentRecord]:
    for row in df.iter_rows(named=True):
        yield PatentRecord(**row)


def to_exclusivity_records(df: pl.DataFrame) -> Iterator[ExclusivityRecord]:
    for row in df.iter_rows(named=True):
        yield ExclusivityRecord(**row)
