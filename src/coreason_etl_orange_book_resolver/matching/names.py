# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Company name canonicalization, tokenization and jurisdiction detection."""

import re
from typing import Optional

from coreason_etl_orange_book_resolver.config import ResolverConfig

_DEFAULT_CONFIG = ResolverConfig()

_AMPERSAND_PATTERN = re.compile(r"&AMP;|&")
_NON_ALPHANUMERIC_PATTERN = re.compile(r"[^A-Z0-9 ]")


def _clean_tokens(name: str) -> list[str]:
    """Upper-case, drop ampersands and punctuation, and split into raw tokens."""
    upper = _AMPERSAND_PATTERN.sub(" ", name.upper())
    return _NON_ALPHANUMERIC_PATTERN.sub(" ", upper).split()


def normalize_company_name(
    name: Optional[str],
    strip_noise_words: bool = False,
    config: ResolverConfig = _DEFAULT_CONFIG,
) -> str:
    """
    Canonicalize a company name for comparison.

    Corporate suffixes (INC, LLC, CORP, CO, USA, ...) are always removed.
    Pharma noise words (PHARMACEUTICALS, PHARMA, HEALTHCARE, ...) are removed
    only when ``strip_noise_words`` is set. A leading or trailing "THE" is
    dropped.

    Args:
        name: Raw company name.
        strip_noise_words: Also remove the noise vocabulary.
        config: Vocabulary source.

    Returns:
        Upper-cased name with single spaces, or "" for blank input.
    """
    if not name or not name.strip():
        return ""

    tokens = [t for t in _clean_tokens(name) if t not in config.corporate_suffixes]
    if strip_noise_words:
        tokens = [t for t in tokens if t not in config.noise_words]

    if tokens and tokens[0] == "THE":
        tokens = tokens[1:]
    if tokens and tokens[-1] == "THE":
        tokens = tokens[:-1]

    return " ".join(tokens)


def tokenize(normalized_name: Optional[str]) -> set[str]:
    """Split a normalized name into a token set, discarding single characters."""
    if not normalized_name:
        return set()
    return {token for token in normalized_name.split() if len(token) > 1}


def detect_entity_jurisdiction(name: Optional[str], config: ResolverConfig = _DEFAULT_CONFIG) -> Optional[str]:
    """
    Infer a jurisdiction code from the corporate suffix of a raw name.

    The raw name is scanned from the end so that "TEVA PHARMACEUTICALS USA INC"
    resolves on its trailing INC.

    Args:
        name: Raw (un-normalized) company name.
        config: Suffix to jurisdiction mapping.

    Returns:
        Jurisdiction code such as "US", "UK" or "DE", or None when no known suffix is present.
    """
    if not name:
        return None

    for token in reversed(_clean_tokens(name)):
        code = config.jurisdiction_suffixes.get(token)
        if code:
            return code
    return None


def jurisdictions_conflict(left: Optional[str], right: Optional[str]) -> bool:
    """True only when both jurisdictions are known and differ."""
    return left is not None and right is not None and left != right
