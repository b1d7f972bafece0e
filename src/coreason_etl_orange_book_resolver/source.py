# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Source module for downloading the Orange Book archive and reading its feed files."""

import zipfile
from pathlib import Path
from typing import Final

import requests

from coreason_etl_orange_book_resolver.config import FdaConfig
from coreason_etl_orange_book_resolver.exceptions import SourceConnectionError, SourceSchemaError
from coreason_etl_orange_book_resolver.utils.logger import logger


class OrangeBookSource:
    """Fetches the Orange Book ZIP and exposes its products, patent and exclusivity members."""

    CHUNK_SIZE: Final[int] = 8192

    def __init__(self, base_url: str = FdaConfig.DEFAULT_BASE_URL) -> None:
        """
        Initialize the source with the FDA base URL.

        Args:
            base_url: The URL to download the ZIP from. Defaults to FdaConfig.DEFAULT_BASE_URL.
        """
        self.base_url = base_url

    def download_archive(self, destination: Path) -> None:
        """
        Download the Orange Book ZIP archive to a local path.

        Args:
            destination: The local file path where the ZIP should be saved.

        Raises:
            SourceSchemaError: If the download link no longer exists (404).
            SourceConnectionError: If the download fails for any other reason.
        """
        logger.info(f"Downloading archive from {self.base_url} to {destination}")
        try:
            with requests.get(self.base_url, stream=True, timeout=60) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                        f.write(chunk)
            logger.info("Download completed successfully.")
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                logger.error(f"Download link not found (404): {self.base_url}")
                raise SourceSchemaError(f"Download link not found: {self.base_url}") from e
            logger.error(f"HTTP error during download: {e}")
            raise SourceConnectionError(f"HTTP error downloading from {self.base_url}: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Failed to download archive: {e}")
            raise SourceConnectionError(f"Failed to download from {self.base_url}: {e}") from e

    def read_member_text(self, zip_path: Path, file_name: str) -> str:
        """
        Read one feed file from the archive without extracting it.

        The member is matched case-insensitively on its base name, so archives
        that nest files in a folder or upper-case the name are accepted.

        Args:
            zip_path: Path to the ZIP file.
            file_name: Feed file name, e.g. products.txt or patent.txt.

        Returns:
            The decoded text of the member.

        Raises:
            SourceConnectionError: If the archive does not exist.
            SourceSchemaError: If the file is not a ZIP or lacks the member.
        """
        if not zip_path.exists():
            raise SourceConnectionError(f"ZIP file not found at {zip_path}")

        try:
            with zipfile.ZipFile(zip_path, "r") as zip_ref:
                member = next(
                    (
                        info
                        for info in zip_ref.infolist()
                        if not info.is_dir() and Path(info.filename).name.lower() == file_name.lower()
                    ),
                    None,
                )
                if member is None:
                    logger.error(f"{file_name} not found in {zip_path}")
                    raise SourceSchemaError(f"Missing required file {file_name} in {zip_path}")

                logger.info(f"Reading {member.filename} ({member.file_size} bytes) from {zip_path}")
                raw = zip_ref.read(member)
        except zipfile.BadZipFile as e:
            logger.error(f"Invalid ZIP file: {e}")
            raise SourceSchemaError(f"File at {zip_path} is not a valid ZIP archive.") from e

        return raw.decode(FdaConfig.ENCODING, errors=FdaConfig.ENCODING_ERRORS)

    def read_products_text(self, zip_path: Path) -> str:
        """Read products.txt; see read_member_text."""
        return self.read_member_text(zip_path, FdaConfig.FILE_PRODUCTS)
