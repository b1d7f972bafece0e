# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Entry point for the Orange Book import."""

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.db.session import (
    build_engine,
    build_session_factory,
    create_schema,
    session_scope,
    truncate_orange_book_tables,
)
from coreason_etl_orange_book_resolver.exceptions import ImportCancelledError, OrangeBookError
from coreason_etl_orange_book_resolver.exclusivity import ExclusivityLoader
from coreason_etl_orange_book_resolver.patents import PatentLoader
from coreason_etl_orange_book_resolver.pipeline import OrangeBookProductImporter
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.source import OrangeBookSource
from coreason_etl_orange_book_resolver.use_codes import PatentUseCodeLoader
from coreason_etl_orange_book_resolver.utils.logger import logger

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="FDA Orange Book import (products, patents, exclusivity) and entity resolution"
    )
    parser.add_argument(
        "--zip",
        type=Path,
        default=None,
        help="Local Orange Book ZIP archive; when omitted the archive is downloaded from --base-url",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=FdaConfig.DEFAULT_BASE_URL,
        help="Base URL for the FDA Orange Book ZIP download",
    )
    parser.add_argument(
        "--download-dir",
        type=Path,
        default=FdaConfig.DEFAULT_DOWNLOAD_DIR,
        help="Directory where the downloaded ZIP is stored",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help=f"SQLAlchemy database URL (default: ${FdaConfig.DATABASE_URL_ENV} or {FdaConfig.DEFAULT_DATABASE_URL})",
    )
    parser.add_argument("--create-schema", action="store_true", help="Create missing tables before importing")
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="Delete all Orange Book applicant, product, patent, exclusivity and link rows before importing",
    )
    parser.add_argument("--skip-patents", action="store_true", help="Do not load patent.txt")
    parser.add_argument("--skip-exclusivity", action="store_true", help="Do not load exclusivity.txt")
    parser.add_argument("--skip-use-codes", action="store_true", help="Do not load patent use code definitions")
    return parser.parse_args(args)


def resolve_archive(source: OrangeBookSource, zip_path: Optional[Path], download_dir: Path) -> Path:
    """Return the local archive path, downloading the archive first when none is given."""
    if zip_path is None:
        download_dir.mkdir(parents=True, exist_ok=True)
        zip_path = download_dir / "orange_book.zip"
        source.download_archive(zip_path)
    return zip_path


def fetch_products_text(source: OrangeBookSource, zip_path: Optional[Path], download_dir: Path) -> str:
    """Return products.txt from a local archive, downloading the archive first when none is given."""
    return source.read_products_text(resolve_archive(source, zip_path, download_dir))


def run_import(parsed_args: argparse.Namespace, cancel_event: threading.Event) -> ImportResult:
    """
    Import products.txt, then the patent and exclusivity feeds and the patent use codes.

    Patents and exclusivity are loaded after products so that they can be
    linked to the products just written.

    Args:
        parsed_args: Parsed command-line arguments.
        cancel_event: Set on Ctrl-C.

    Returns:
        The combined ImportResult.
    """
    engine = build_engine(parsed_args.database_url)
    if parsed_args.create_schema:
        logger.info("Creating database schema")
        create_schema(engine)
    session_factory = build_session_factory(engine)

    logger.info("Step 1: Reading source data...")
    source = OrangeBookSource(base_url=parsed_args.base_url)
    zip_path = resolve_archive(source, parsed_args.zip, parsed_args.download_dir)
    content = source.read_products_text(zip_path)

    if parsed_args.truncate:
        logger.warning("Truncating Orange Book tables before import")
        with session_scope(session_factory) as session:
            truncate_orange_book_tables(session)

    logger.info("Step 2: Importing products and resolving entities...")
    result = OrangeBookProductImporter(session_factory).run(content, cancel_event=cancel_event)

    if not parsed_args.skip_patents:
        logger.info("Step 3: Loading patents...")
        patent_text = source.read_member_text(zip_path, FdaConfig.FILE_PATENTS)
        PatentLoader(session_factory).run(patent_text, result, cancel_event=cancel_event)

    if not parsed_args.skip_exclusivity:
        logger.info("Step 4: Loading exclusivity...")
        exclusivity_text = source.read_member_text(zip_path, FdaConfig.FILE_EXCLUSIVITY)
        ExclusivityLoader(session_factory).run(exclusivity_text, result, cancel_event=cancel_event)

    if not parsed_args.skip_use_codes:
        logger.info("Step 5: Loading patent use codes...")
        PatentUseCodeLoader(session_factory).run(result, cancel_event=cancel_event)

    return result


def main(args: list[str] | None = None) -> None:
    """Main entry point for the import."""
    parsed_args = parse_args(args)
    cancel_event = threading.Event()

    def _request_cancel(signum: int, frame: object) -> None:
        logger.warning("Cancellation requested, finishing the current batch...")
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, _request_cancel)
    logger.info("Starting Orange Book import")

    try:
        result = run_import(parsed_args, cancel_event)
    except ImportCancelledError as e:
        if e.result is not None:
            logger.warning(f"Import cancelled: {e.result.summary()}")
        sys.exit(EXIT_CANCELLED)
    except OrangeBookError as e:
        logger.error(f"Import failed: {e}")
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        logger.exception(f"Pipeline failed: {e}")
        sys.exit(EXIT_FAILURE)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    for error in result.errors:
        logger.error(error)
    if not result.success:
        logger.error(f"Import finished with errors: {result.message}")
        sys.exit(EXIT_FAILURE)

    logger.info(f"Import completed successfully: {result.message}")
    sys.exit(EXIT_OK)


if __name__ == "__main__":  # pragma: no cover
    main()
