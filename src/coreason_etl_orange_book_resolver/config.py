# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Configuration module for the Orange Book reconciliation pipeline."""

from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field


class FdaConfig:
    """Configuration constants for the Orange Book feed imports."""

    # Source Definition
    DEFAULT_BASE_URL: Final[str] = "https://www.fda.gov/media/76860/download?attachment"
    DEFAULT_DOWNLOAD_DIR: Final[Path] = Path("data/bronze")

    # File Names
    FILE_PRODUCTS: Final[str] = "products.txt"
    FILE_PATENTS: Final[str] = "patent.txt"
    FILE_EXCLUSIVITY: Final[str] = "exclusivity.txt"

    # Parsing
    DELIMITER: Final[str] = "~"
    DF_ROUTE_SEPARATOR: Final[str] = ";"
    INGREDIENT_SEPARATOR: Final[str] = ";"
    EXPECTED_COLUMN_COUNT: Final[int] = 14
    PATENT_COLUMN_COUNT: Final[int] = 10
    EXCLUSIVITY_COLUMN_COUNT: Final[int] = 5
    ENCODING: Final[str] = "utf-8"
    ENCODING_ERRORS: Final[str] = "replace"  # Lossy, the feed occasionally carries stray bytes

    # Approval dates
    PREMARKET_DATE_TEXT: Final[str] = "Approved Prior to Jan 1, 1982"
    APPROVAL_DATE_FORMATS: Final[tuple[str, ...]] = ("%b %d, %Y", "%B %d, %Y", "%Y-%m-%d")
    FEED_DATE_FORMATS: Final[tuple[str, ...]] = ("%b %d, %Y",)

    # Application type codes
    APPL_TYPE_PREFIXES: Final[dict[str, str]] = {"N": "NDA", "A": "ANDA"}

    # Persistence
    PRODUCT_BATCH_SIZE: Final[int] = 5000
    FEED_BATCH_SIZE: Final[int] = 5000
    DATABASE_URL_ENV: Final[str] = "ORANGE_BOOK_DATABASE_URL"
    DEFAULT_DATABASE_URL: Final[str] = "sqlite:///orange_book.db"


DEFAULT_CORPORATE_SUFFIXES: Final[frozenset[str]] = frozenset(
    {
        "INCORPORATED",
        "CORPORATION",
        "INTERNATIONAL",
        "COMPANY",
        "LIMITED",
        "INC",
        "CORP",
        "LLC",
        "LTD",
        "CO",
        "LP",
        "LLP",
        "AG",
        "GMBH",
        "SA",
        "NV",
        "PLC",
        "SE",
        "SRL",
        "BV",
        "SARL",
        "PTY",
        "USA",
        "US",
        "INTL",
        "LC",
    }
)

DEFAULT_NOISE_WORDS: Final[frozenset[str]] = frozenset(
    {
        "PHARMACEUTICALS",
        "PHARMACEUTICAL",
        "PHARMA",
        "PHARMS",
        "PHARM",
        "HEALTHCARE",
        "LABORATORIES",
        "LABORATORY",
        "LABS",
        "LAB",
        "PRODUCTS",
        "PRODUCT",
        "HOLDINGS",
        "HOLDING",
        "GROUP",
        "ENTERPRISES",
        "ENTERPRISE",
        "INDUSTRIES",
        "INDUSTRY",
        "SCIENCES",
        "SCIENCE",
        "THERAPEUTICS",
        "BIOSCIENCES",
        "BIOTECH",
        "BIOTECHNOLOGY",
    }
)

DEFAULT_JURISDICTION_SUFFIXES: Final[dict[str, str]] = {
    "INC": "US",
    "INCORPORATED": "US",
    "CORP": "US",
    "CORPORATION": "US",
    "LLC": "US",
    "CO": "US",
    "LTD": "UK",
    "LIMITED": "UK",
    "PLC": "UK",
    "GMBH": "DE",
}


class ResolverConfig(BaseModel):
    """
    Tunable vocabulary and thresholds for entity resolution.

    The defaults reproduce the matching behaviour used against the production
    reference database; callers may pass an adjusted copy to widen or narrow
    the vocabulary without touching the resolver.
    """

    model_config = ConfigDict(frozen=True)

    threshold: float = Field(default=0.67, ge=0.0, le=1.0, description="Minimum max(jaccard, containment)")
    jurisdiction_suffixes: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_JURISDICTION_SUFFIXES))
    corporate_suffixes: frozenset[str] = DEFAULT_CORPORATE_SUFFIXES
    noise_words: frozenset[str] = DEFAULT_NOISE_WORDS
    min_fuzzy_name_length: int = Field(default=3, description="Single-token names shorter than this skip fuzzy matching")
    min_stripped_tokens: int = Field(default=2, description="Tokens required after noise stripping")
    min_substring_length: int = Field(
        default=3, description="Shortest ingredient name or application number used for substring matching"
    )
