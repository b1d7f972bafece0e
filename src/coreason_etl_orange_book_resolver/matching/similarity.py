# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Token-set similarity scores."""

from collections.abc import Set


def calculate_token_similarity(tokens_a: Set[str], tokens_b: Set[str]) -> tuple[float, float]:
    """
    Compute Jaccard and containment similarity of two token sets.

    Containment is asymmetric: it is the fraction of ``tokens_a`` found in
    ``tokens_b``, so a short applicant name fully absorbed by a longer
    organization name scores 1.0.

    Args:
        tokens_a: Reference token set (usually the applicant).
        tokens_b: Candidate token set.

    Returns:
        (jaccard, containment), both 0.0 when either set is empty.
    """
    if not tokens_a or not tokens_b:
        return 0.0, 0.0

    intersection = len(tokens_a & tokens_b)
    if intersection == 0:
        return 0.0, 0.0

    union = len(tokens_a) + len(tokens_b) - intersection
    return intersection / union, intersection / len(tokens_a)
