# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""SQLAlchemy models for the Orange Book tables and the reference tables they link to."""

from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base for all tables."""


# Reference tables, populated by the label import and read-only here


class Organization(Base):
    """Organization (labeler / registrant) from the label database."""

    __tablename__ = "organization"

    organization_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class IngredientSubstance(Base):
    """Ingredient substance from the label database."""

    __tablename__ = "ingredient_substance"

    ingredient_substance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    substance_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class MarketingCategory(Base):
    """Marketing category of a labeled product, carrying its application number."""

    __tablename__ = "marketing_category"

    marketing_category_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id_value: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True, comment="Application or monograph id, e.g. NDA205613"
    )


# Orange Book tables


class OrangeBookApplicant(Base):
    """Applicant (application holder) named in products.txt."""

    __tablename__ = "orange_book_applicant"
    __table_args__ = (UniqueConstraint("applicant_key", name="uq_orange_book_applicant_key"),)

    applicant_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    applicant_key: Mapped[str] = mapped_column(String(200), nullable=False, comment="Trimmed, upper-cased short name")
    applicant_name: Mapped[str] = mapped_column(String(200), nullable=False)
    applicant_full_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    products: Mapped[list["OrangeBookProduct"]] = relationship("OrangeBookProduct", back_populates="applicant")


class OrangeBookProduct(Base):
    """Approved drug product from products.txt."""

    __tablename__ = "orange_book_product"
    __table_args__ = (UniqueConstraint("appl_no", "product_no", name="uq_orange_book_product_appl_product"),)

    product_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    applicant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("orange_book_applicant.applicant_id"), nullable=True
    )
    appl_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    appl_no: Mapped[str] = mapped_column(String(20), nullable=False)
    product_no: Mapped[str] = mapped_column(String(10), nullable=False)
    ingredient: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dosage_form: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    route: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    trade_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    strength: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    te_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    approval_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    approval_date_is_premarket: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_rld: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_rs: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    applicant: Mapped[Optional["OrangeBookApplicant"]] = relationship("OrangeBookApplicant", back_populates="products")


class OrangeBookApplicantOrganization(Base):
    """Link from an applicant to the organization it was resolved to."""

    __tablename__ = "orange_book_applicant_organization"
    __table_args__ = (
        UniqueConstraint("applicant_id", "organization_id", name="uq_orange_book_applicant_organization"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    applicant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orange_book_applicant.applicant_id"), nullable=False
    )
    organization_id: Mapped[int] = mapped_column(Integer, ForeignKey("organization.organization_id"), nullable=False)


class OrangeBookProductIngredientSubstance(Base):
    """Link from a product to an ingredient substance."""

    __tablename__ = "orange_book_product_ingredient_substance"
    __table_args__ = (
        UniqueConstraint("product_id", "ingredient_substance_id", name="uq_orange_book_product_ingredient"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("orange_book_product.product_id"), nullable=False)
    ingredient_substance_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ingredient_substance.ingredient_substance_id"), nullable=False
    )


class OrangeBookProductMarketingCategory(Base):
    """Link from a product to a marketing category sharing its application number."""

    __tablename__ = "orange_book_product_marketing_category"
    __table_args__ = (
        UniqueConstraint("product_id", "marketing_category_id", name="uq_orange_book_product_category"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("orange_book_product.product_id"), nullable=False)
    marketing_category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("marketing_category.marketing_category_id"), nullable=False
    )


class OrangeBookPatent(Base):
    """Patent listed in patent.txt, linked to its product when one is on file."""

    __tablename__ = "orange_book_patent"
    __table_args__ = (
        UniqueConstraint("appl_type", "appl_no", "product_no", "patent_no", name="uq_orange_book_patent_key"),
    )

    patent_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("orange_book_product.product_id"), nullable=True, index=True
    )
    appl_type: Mapped[str] = mapped_column(String(10), nullable=False)
    appl_no: Mapped[str] = mapped_column(String(20), nullable=False)
    product_no: Mapped[str] = mapped_column(String(10), nullable=False)
    patent_no: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    patent_expire_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_drug_substance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_drug_product: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    patent_use_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_delisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submission_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class OrangeBookExclusivity(Base):
    """Exclusivity period listed in exclusivity.txt."""

    __tablename__ = "orange_book_exclusivity"
    __table_args__ = (
        UniqueConstraint(
            "appl_type", "appl_no", "product_no", "exclusivity_code", name="uq_orange_book_exclusivity_key"
        ),
    )

    exclusivity_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("orange_book_product.product_id"), nullable=True, index=True
    )
    appl_type: Mapped[str] = mapped_column(String(10), nullable=False)
    appl_no: Mapped[str] = mapped_column(String(20), nullable=False)
    product_no: Mapped[str] = mapped_column(String(10), nullable=False)
    exclusivity_code: Mapped[str] = mapped_column(String(20), nullable=False)
    exclusivity_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)


class OrangeBookPatentUseCode(Base):
    """Patent use code definition, keyed by the code itself."""

    __tablename__ = "orange_book_patent_use_code"

    code: Mapped[str] = mapped_column(String(20), primary_key=True)
    definition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# Tables owned by the Orange Book import, children first
ORANGE_BOOK_TABLES: tuple[type[Base], ...] = (
    OrangeBookPatent,
    OrangeBookExclusivity,
    OrangeBookApplicantOrganization,
    OrangeBookProductIngredientSubstance,
    OrangeBookProductMarketingCategory,
    OrangeBookProduct,
    OrangeBookApplicant,
)
