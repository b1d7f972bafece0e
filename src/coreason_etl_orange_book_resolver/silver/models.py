# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Pydantic models for normalized Orange Book rows (products, patents, exclusivity)."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductRecord(BaseModel):
    """
    Typed view of one products.txt row.
    """

    model_config = ConfigDict(frozen=True)

    ingredient: Optional[str] = None
    dosage_form: Optional[str] = None
    route: Optional[str] = None
    trade_name: Optional[str] = None
    strength: Optional[str] = None
    appl_type: str = Field(description="Raw application type code, e.g. N or A")
    appl_type_prefix: str = Field(description="NDA, ANDA or the raw code when unmapped")
    appl_no: str
    product_no: str
    te_code: Optional[str] = None
    approval_date: Optional[date] = None
    approval_date_is_premarket: bool = False
    is_rld: bool = False
    is_rs: bool = False
    type: Optional[str] = Field(default=None, description="RX, OTC or DISCN")
    applicant_short_name: Optional[str] = None
    applicant_full_name: Optional[str] = None

    @property
    def natural_key(self) -> tuple[str, str]:
        """(appl_no, product_no), unique per product."""
        return (self.appl_no, self.product_no)

    @property
    def application_number(self) -> str:
        """Prefixed application number, e.g. NDA205613."""
        return f"{self.appl_type_prefix}{self.appl_no}"


class ApplicantRecord(BaseModel):
    """
    Applicant as it appears in the feed.
    """

    model_config = ConfigDict(frozen=True)

    short_name: str
    full_name: Optional[str] = None

    @property
    def lookup_key(self) -> str:
        return normalize_applicant_key(self.short_name)


def normalize_applicant_key(short_name: str) -> str:
    """Lookup key for an applicant short name (trimmed, upper-cased)."""
    return short_name.strip().upper()


class PatentRecord(BaseModel):
    """
    Typed view of one patent.txt row.

    The same patent may be listed against several products; a row is
    identified by product key plus patent number.
    """

    model_config = ConfigDict(frozen=True)

    appl_type: str
    appl_no: str
    product_no: str
    patent_no: str
    patent_expire_date: Optional[date] = None
    is_drug_substance: bool = False
    is_drug_product: bool = False
    patent_use_code: Optional[str] = None
    is_delisted: bool = False
    submission_date: Optional[date] = None

    @property
    def product_key(self) -> tuple[str, str, str]:
        return (self.appl_type, self.appl_no, self.product_no)

    @property
    def natural_key(self) -> tuple[str, str, str, str]:
        return (*self.product_key, self.patent_no)


class ExclusivityRecord(BaseModel):
    """
    Typed view of one exclusivity.txt row.
    """

    model_config = ConfigDict(frozen=True)

    appl_type: str
    appl_no: str
    product_no: str
    exclusivity_code: str
    exclusivity_date: Optional[date] = None

    @property
    def product_key(self) -> tuple[str, str, str]:
        return (self.appl_type, self.appl_no, self.product_no)

    @property
    def natural_key(self) -> tuple[str, str, str, str]:
        return (*self.product_key, self.exclusivity_code)
