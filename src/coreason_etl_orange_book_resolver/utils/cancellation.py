# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Cooperative cancellation checks."""

import threading
from typing import Optional

from coreason_etl_orange_book_resolver.exceptions import ImportCancelledError


def is_cancelled(cancel_event: Optional[threading.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def raise_if_cancelled(cancel_event: Optional[threading.Event]) -> None:
    """Raise ImportCancelledError once the event has been set."""
    if is_cancelled(cancel_event):
        raise ImportCancelledError()
