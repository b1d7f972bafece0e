# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Tests for Silver layer field normalization."""

from datetime import date

import polars as pl
import pytest

from coreason_etl_orange_book_resolver.silver.models import ProductRecord
from coreason_etl_orange_book_resolver.silver.transform import (
    EXCLUSIVITY_SCHEMA,
    PATENT_SCHEMA,
    SILVER_SCHEMA,
    extract_applicants,
    is_premarket_date,
    map_appl_type_to_prefix,
    normalize_exclusivity_rows,
    normalize_patent_rows,
    normalize_rows,
    parse_approval_date,
    parse_feed_date,
    parse_yes_no,
    split_df_route,
    split_ingredients,
    to_exclusivity_records,
    to_patent_records,
    to_product_records,
)

SALIX_FIELDS = [
    "BUDESONIDE",
    "AEROSOL, FOAM;RECTAL",
    "UCERIS",
    "SALIX",
    "2MG/ACTUATION",
    "N",
    "205613",
    "001",
    "AB",
    "Apr 12, 2023",
    "Yes",
    "Yes",
    "RX",
    "SALIX PHARMACEUTICALS INC",
]


def _record(short_name: str | None, full_name: str | None, product_no: str = "001") -> ProductRecord:
    return ProductRecord(
        appl_type="N",
        appl_type_prefix="NDA",
        appl_no="000001",
        product_no=product_no,
        applicant_short_name=short_name,
        applicant_full_name=full_name,
    )


class TestSplitDfRoute:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("AEROSOL, FOAM;TOPICAL", ("AEROSOL, FOAM", "TOPICAL")),
            ("TABLET", ("TABLET", None)),
            ("", (None, None)),
            (None, (None, None)),
            ("   ", (None, None)),
            ("TABLET;", ("TABLET", None)),
            (";ORAL", (None, "ORAL")),
            ("KIT;A;B", ("KIT;A", "B")),
            ("  CAPSULE ; ORAL  ", ("CAPSULE", "ORAL")),
        ],
    )
    def test_split(self, value: str | None, expected: tuple[str | None, str | None]) -> None:
        assert split_df_route(value) == expected


class TestApprovalDate:
    def test_standard_format(self) -> None:
        assert parse_approval_date("Apr 12, 2023") == (date(2023, 4, 12), False)

    def test_single_digit_day(self) -> None:
        assert parse_approval_date("Oct 7, 2014") == (date(2014, 10, 7), False)

    def test_full_month_and_iso(self) -> None:
        assert parse_approval_date("September 3, 2019") == (date(2019, 9, 3), False)
        assert parse_approval_date("2019-09-03") == (date(2019, 9, 3), False)

    def test_premarket_sentinel(self) -> None:
        assert parse_approval_date("Approved Prior to Jan 1, 1982") == (None, True)
        assert parse_approval_date("approved prior to jan 1, 1982") == (None, True)
        assert is_premarket_date("  Approved Prior to Jan 1, 1982 ")

    def test_empty(self) -> None:
        assert parse_approval_date("") == (None, False)
        assert parse_approval_date(None) == (None, False)

    def test_unparseable(self) -> None:
        assert parse_approval_date("sometime in 1990") == (None, False)


class TestScalarHelpers:
    @pytest.mark.parametrize(
        "code, expected", [("N", "NDA"), ("A", "ANDA"), ("n", "NDA"), ("BLA", "BLA"), (" A ", "ANDA"), ("", "")]
    )
    def test_map_appl_type_to_prefix(self, code: str, expected: str) -> None:
        assert map_appl_type_to_prefix(code) == expected

    @pytest.mark.parametrize(
        "value, expected", [("Yes", True), ("YES", True), ("yes", True), ("No", False), ("", False), (None, False), ("Y", False)]
    )
    def test_parse_yes_no(self, value: str | None, expected: bool) -> None:
        assert parse_yes_no(value) is expected

    def test_split_ingredients(self) -> None:
        assert split_ingredients("AMLODIPINE BESYLATE; OLMESARTAN MEDOXOMIL") == [
            "AMLODIPINE BESYLATE",
            "OLMESARTAN MEDOXOMIL",
        ]
        assert split_ingredients("BUDESONIDE") == ["BUDESONIDE"]
        assert split_ingredients("A; ;a;B") == ["A", "B"]
        assert split_ingredients(None) == []


class TestNormalizeRows:
    def test_salix_row(self) -> None:
        df = normalize_rows([SALIX_FIELDS])

        assert df.height == 1
        row = df.row(0, named=True)
        assert row["ingredient"] == "BUDESONIDE"
        assert row["dosage_form"] == "AEROSOL, FOAM"
        assert row["route"] == "RECTAL"
        assert row["trade_name"] == "UCERIS"
        assert row["appl_type_prefix"] == "NDA"
        assert row["approval_date"] == date(2023, 4, 12)
        assert row["approval_date_is_premarket"] is False
        assert row["is_rld"] is True
        assert row["is_rs"] is True
        assert row["te_code"] == "AB"
        assert row["applicant_short_name"] == "SALIX"
        assert row["applicant_full_name"] == "SALIX PHARMACEUTICALS INC"

    def test_blank_optional_fields_become_null(self) -> None:
        fields = list(SALIX_FIELDS)
        fields[8] = ""
        fields[9] = "Approved Prior to Jan 1, 1982"
        fields[10] = "No"
        fields[11] = ""
        df = normalize_rows([fields])

        row = df.row(0, named=True)
        assert row["te_code"] is None
        assert row["approval_date"] is None
        assert row["approval_date_is_premarket"] is True
        assert row["is_rld"] is False
        assert row["is_rs"] is False

    def test_values_are_trimmed(self) -> None:
        fields = [f"  {value}  " for value in SALIX_FIELDS]
        row = normalize_rows([fields]).row(0, named=True)
        assert row["appl_no"] == "205613"
        assert row["trade_name"] == "UCERIS"

    def test_empty_input_keeps_schema(self) -> None:
        df = normalize_rows([])
        assert df.is_empty()
        assert df.columns == list(SILVER_SCHEMA)
        assert df.schema["approval_date"] == pl.Date

    def test_to_product_records(self) -> None:
        records = list(to_product_records(normalize_rows([SALIX_FIELDS])))
        assert len(records) == 1
        record = records[0]
        assert record.natural_key == ("205613", "001")
        assert record.application_number == "NDA205613"


class TestExtractApplicants:
    def test_one_applicant_per_short_name(self) -> None:
        records = [
            _record("SALIX", "SALIX PHARMACEUTICALS INC"),
            _record("salix ", "SALIX PHARMACEUTICALS INC", product_no="002"),
            _record("TEVA", "TEVA PHARMACEUTICALS USA INC"),
        ]
        applicants = extract_applicants(records)
        assert [a.short_name for a in applicants] == ["SALIX", "TEVA"]

    def test_first_non_empty_full_name_wins(self) -> None:
        records = [
            _record("MYLAN", None),
            _record("MYLAN", "MYLAN PHARMACEUTICALS INC", product_no="002"),
            _record("MYLAN", "MYLAN INSTITUTIONAL INC", product_no="003"),
        ]
        applicants = extract_applicants(records)
        assert len(applicants) == 1
        assert applicants[0].full_name == "MYLAN PHARMACEUTICALS INC"

    def test_rows_without_applicant_are_ignored(self) -> None:
        assert extract_applicants([_record(None, "ORPHAN FULL NAME")]) == []


class TestFeedDate:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Aug 24, 2026", date(2026, 8, 24)),
            ("Feb 1, 2027", date(2027, 2, 1)),
            ("  Feb 01, 2027 ", date(2027, 2, 1)),
            ("", None),
            (None, None),
            ("2027-02-01", None),
        ],
    )
    def test_parse_feed_date(self, text: str | None, expected: date | None) -> None:
        assert parse_feed_date(text) == expected


class TestNormalizePatentRows:
    def test_typed_columns(self) -> None:
        rows = [["N", "205613", "001", "8765432", "Aug 24, 2026", "Y", "", " U-141 ", "y", "Jan 5, 2015"]]
        df = normalize_patent_rows(rows)

        assert df.columns == list(PATENT_SCHEMA)
        assert df.schema["patent_expire_date"] == pl.Date
        (record,) = to_patent_records(df)
        assert record.natural_key == ("N", "205613", "001", "8765432")
        assert record.product_key == ("N", "205613", "001")
        assert record.patent_expire_date == date(2026, 8, 24)
        assert record.is_drug_substance
        assert not record.is_drug_product
        assert record.patent_use_code == "U-141"
        assert record.is_delisted
        assert record.submission_date == date(2015, 1, 5)

    def test_blank_use_code_is_null_and_keyless_rows_dropped(self) -> None:
        rows = [
            ["N", "205613", "001", "8765432", "", "", "", "", "", ""],
            ["N", "205613", "001", "", "", "", "", "", "", ""],
        ]
        df = normalize_patent_rows(rows)

        assert df.height == 1
        assert df["patent_use_code"][0] is None
        assert df["patent_expire_date"][0] is None

    def test_no_rows(self) -> None:
        assert normalize_patent_rows([]).is_empty()


class TestNormalizeExclusivityRows:
    def test_typed_columns(self) -> None:
        df = normalize_exclusivity_rows([[" N ", "205613", "001", " NCE ", "Apr 12, 2028"]])

        assert df.columns == list(EXCLUSIVITY_SCHEMA)
        assert df.schema["exclusivity_date"] == pl.Date
        (record,) = to_exclusivity_records(df)
        assert record.natural_key == ("N", "205613", "001", "NCE")
        assert record.exclusivity_date == date(2028, 4, 12)

    def test_rows_without_code_are_dropped(self) -> None:
        df = normalize_exclusivity_rows([["N", "205613", "001", "", "Apr 12, 2028"]])
        assert df.is_empty()
        assert normalize_exclusivity_rows([]).is_empty()
