# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Exception hierarchy for the Orange Book reconciliation pipeline."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from coreason_etl_orange_book_resolver.result import ImportResult


class OrangeBookError(Exception):
    """Base class for all pipeline errors."""


class SourceConnectionError(OrangeBookError):
    """Raised when the source archive cannot be downloaded or read."""


class SourceSchemaError(OrangeBookError):
    """Raised when the source archive does not have the expected layout."""


class PersistenceError(OrangeBookError):
    """Raised when a database read or write fails during an import."""


class ImportCancelledError(OrangeBookError):
    """
    Raised when a cooperative cancellation request is observed.

    Attributes:
        result: The partial ImportResult for the work completed before cancellation.
    """

    def __init__(self, message: str = "Import was cancelled.", result: Optional["ImportResult"] = None) -> None:
        super().__init__(message)
        self.result = result
