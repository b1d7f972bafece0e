# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Tests for the CLI entry point."""

import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine, func, select

from coreason_etl_orange_book_resolver.db.models import (
    OrangeBookExclusivity,
    OrangeBookPatent,
    OrangeBookPatentUseCode,
    OrangeBookProduct,
)
from coreason_etl_orange_book_resolver.exceptions import ImportCancelledError, SourceSchemaError
from coreason_etl_orange_book_resolver.main import fetch_products_text, main, parse_args, resolve_archive
from coreason_etl_orange_book_resolver.result import ImportResult


class TestCli:
    """Tests for CLI arguments and execution."""

    def test_parse_args_defaults(self) -> None:
        args = parse_args([])
        assert args.base_url == "https://www.fda.gov/media/76860/download?attachment"
        assert args.download_dir == Path("data/bronze")
        assert args.zip is None
        assert args.database_url is None
        assert not args.create_schema
        assert not args.truncate
        assert not args.skip_use_codes
        assert not args.skip_patents
        assert not args.skip_exclusivity

    def test_parse_args_custom(self) -> None:
        args = parse_args(
            [
                "--zip",
                "/tmp/ob.zip",
                "--database-url",
                "sqlite://",
                "--create-schema",
                "--truncate",
                "--skip-use-codes",
                "--skip-patents",
                "--skip-exclusivity",
            ]
        )
        assert args.zip == Path("/tmp/ob.zip")
        assert args.database_url == "sqlite://"
        assert args.create_schema and args.truncate and args.skip_use_codes
        assert args.skip_patents and args.skip_exclusivity

    @patch("coreason_etl_orange_book_resolver.main.run_import")
    def test_main_success(self, mock_run: MagicMock) -> None:
        mock_run.return_value = ImportResult(message="done")
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        mock_run.assert_called_once()

    @patch("coreason_etl_orange_book_resolver.main.run_import")
    def test_main_result_with_errors(self, mock_run: MagicMock) -> None:
        mock_run.return_value = ImportResult(errors=["File content is empty."])
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    @patch("coreason_etl_orange_book_resolver.main.run_import")
    def test_main_source_failure(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = SourceSchemaError("Missing required file products.txt")
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    @patch("coreason_etl_orange_book_resolver.main.run_import")
    def test_main_unexpected_failure(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = Exception("Boom")
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    @patch("coreason_etl_orange_book_resolver.main.run_import")
    def test_main_cancelled(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = ImportCancelledError(result=ImportResult(cancelled=True))
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 130


class TestFetchProductsText:
    def test_local_zip_is_not_downloaded(self, tmp_path: Path) -> None:
        source = MagicMock()
        source.read_products_text.return_value = "header\n"
        zip_path = tmp_path / "ob.zip"

        assert fetch_products_text(source, zip_path, tmp_path) == "header\n"
        source.download_archive.assert_not_called()
        source.read_products_text.assert_called_once_with(zip_path)

    def test_download_when_no_zip(self, tmp_path: Path) -> None:
        source = MagicMock()
        download_dir = tmp_path / "bronze"

        fetch_products_text(source, None, download_dir)

        assert download_dir.exists()
        source.download_archive.assert_called_once_with(download_dir / "orange_book.zip")
        source.read_products_text.assert_called_once_with(download_dir / "orange_book.zip")


class TestResolveArchive:
    def test_local_zip_is_returned_as_is(self, tmp_path: Path) -> None:
        source = MagicMock()
        assert resolve_archive(source, tmp_path / "ob.zip", tmp_path) == tmp_path / "ob.zip"
        source.download_archive.assert_not_called()

    def test_download_target(self, tmp_path: Path) -> None:
        source = MagicMock()
        assert resolve_archive(source, None, tmp_path / "bronze") == tmp_path / "bronze" / "orange_book.zip"
        source.download_archive.assert_called_once()


class TestEndToEnd:
    @pytest.fixture
    def archive(
        self, tmp_path: Path, salix_content: str, salix_patent_content: str, salix_exclusivity_content: str
    ) -> Path:
        zip_path = tmp_path / "ob.zip"
        with zipfile.ZipFile(zip_path, "w") as zf:
            zf.writestr("products.txt", salix_content)
            zf.writestr("patent.txt", salix_patent_content)
            zf.writestr("exclusivity.txt", salix_exclusivity_content)
        return zip_path

    def test_local_archive_into_sqlite(self, tmp_path: Path, archive: Path) -> None:
        db_url = f"sqlite:///{tmp_path / 'cli.db'}"

        with pytest.raises(SystemExit) as exc_info:
            main(["--zip", str(archive), "--database-url", db_url, "--create-schema", "--truncate"])
        assert exc_info.value.code == 0

        engine = create_engine(db_url)
        with engine.connect() as conn:
            assert conn.scalar(select(func.count()).select_from(OrangeBookProduct)) == 1
            assert conn.scalar(select(func.count()).select_from(OrangeBookPatentUseCode)) > 0
            product_id = conn.scalar(select(OrangeBookProduct.product_id))
            assert conn.scalar(select(OrangeBookPatent.product_id)) == product_id
            assert conn.scalar(select(OrangeBookExclusivity.product_id)) == product_id

    def test_skip_flags(self, tmp_path: Path, archive: Path) -> None:
        db_url = f"sqlite:///{tmp_path / 'skip.db'}"

        with pytest.raises(SystemExit) as exc_info:
            main(
                [
                    "--zip",
                    str(archive),
                    "--database-url",
                    db_url,
                    "--create-schema",
                    "--skip-patents",
                    "--skip-exclusivity",
                    "--skip-use-codes",
                ]
            )
        assert exc_info.value.code == 0

        engine = create_engine(db_url)
        with engine.connect() as conn:
            assert conn.scalar(select(func.count()).select_from(OrangeBookProduct)) == 1
            assert conn.scalar(select(func.count()).select_from(OrangeBookPatent)) == 0
            assert conn.scalar(select(func.count()).select_from(OrangeBookExclusivity)) == 0

    def test_archive_without_patent_file_fails(self, tmp_path: Path, salix_content: str) -> None:
        zip_path = tmp_path / "products_only.zip"
        with zipfile.ZipFile(zip_path, "w") as zf:
            zf.writestr("products.txt", salix_content)

        with pytest.raises(SystemExit) as exc_info:
            main(["--zip", str(zip_path), "--database-url", f"sqlite:///{tmp_path / 'x.db'}", "--create-schema"])
        assert exc_info.value.code == 1
