# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Entity resolution of Orange Book rows against the label reference tables."""

import threading
from collections.abc import Iterable
from typing import NamedTuple, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coreason_etl_orange_book_resolver.config import ResolverConfig
from coreason_etl_orange_book_resolver.db.models import (
    IngredientSubstance,
    MarketingCategory,
    OrangeBookApplicant,
    OrangeBookApplicantOrganization,
    OrangeBookProductIngredientSubstance,
    OrangeBookProductMarketingCategory,
    Organization,
)
from coreason_etl_orange_book_resolver.exceptions import PersistenceError
from coreason_etl_orange_book_resolver.matching.names import (
    detect_entity_jurisdiction,
    jurisdictions_conflict,
    normalize_company_name,
    tokenize,
)
from coreason_etl_orange_book_resolver.matching.similarity import calculate_token_similarity
from coreason_etl_orange_book_resolver.result import ImportResult
from coreason_etl_orange_book_resolver.utils.cancellation import raise_if_cancelled
from coreason_etl_orange_book_resolver.utils.logger import logger


class ResolutionOutcome(NamedTuple):
    created: int
    unmatched: int


class OrganizationCandidate(NamedTuple):
    """Pre-normalized organization held in memory for matching."""

    organization_id: int
    normalized_name: str
    tokens: frozenset[str]
    stripped_tokens: frozenset[str]
    jurisdiction: Optional[str]


class OrganizationMatch(NamedTuple):
    organization_id: int
    score: float
    tier: str


def build_organization_candidates(
    organizations: Iterable[tuple[int, Optional[str]]],
    config: ResolverConfig,
) -> list[OrganizationCandidate]:
    """
    Normalize organization names once so that every applicant can be scored cheaply.

    Organizations whose name normalizes to nothing (e.g. just "Inc.") are skipped.
    """
    candidates = []
    for organization_id, name in organizations:
        normalized = normalize_company_name(name, config=config)
        if not normalized:
            continue
        candidates.append(
            OrganizationCandidate(
                organization_id=organization_id,
                normalized_name=normalized,
                tokens=frozenset(tokenize(normalized)),
                stripped_tokens=frozenset(tokenize(normalize_company_name(name, strip_noise_words=True, config=config))),
                jurisdiction=detect_entity_jurisdiction(name, config),
            )
        )
    return sorted(candidates, key=lambda c: c.organization_id)


class EntityResolver:
    """
    Links applicants and products to pre-existing reference records.

    Each pass is independent, loads the links already present so that no pair
    is ever inserted twice, and returns how many links it created and how
    many entities stayed unmatched.
    """

    def __init__(
        self,
        session: Session,
        config: Optional[ResolverConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.session = session
        self.config = config or ResolverConfig()
        self.cancel_event = cancel_event

    # Applicant -> Organization

    def _best_token_match(
        self,
        tokens: set[str],
        candidates: list[OrganizationCandidate],
        applicant_jurisdiction: Optional[str],
        stripped: bool,
    ) -> Optional[OrganizationMatch]:
        best: Optional[tuple[float, float, int]] = None
        for candidate in candidates:
            if jurisdictions_conflict(applicant_jurisdiction, candidate.jurisdiction):
                continue
            candidate_tokens = candidate.stripped_tokens if stripped else candidate.tokens
            if not candidate_tokens:
                continue

            jaccard, containment = calculate_token_similarity(tokens, candidate_tokens)
            score = max(jaccard, containment)
            if score <= 0.0:
                continue

            # Higher score, then tighter jaccard, then lowest id
            key = (score, jaccard, -candidate.organization_id)
            if best is None or key > best:
                best = key

        if best is None or best[0] < self.config.threshold:
            return None
        return OrganizationMatch(organization_id=-best[2], score=best[0], tier="stripped" if stripped else "token")

    def match_organization(
        self,
        full_name: Optional[str],
        short_name: Optional[str],
        candidates: list[OrganizationCandidate],
    ) -> Optional[OrganizationMatch]:
        """
        Find the single best organization for an applicant.

        Tiers, in order: exact normalized name (full name, then short name),
        token similarity with noise words kept, token similarity with noise
        words stripped. A candidate whose jurisdiction is known and differs
        from the applicant's is never considered.

        Args:
            full_name: Applicant full name, preferred for every tier.
            short_name: Applicant short name, used for the exact tier only.
            candidates: Organizations from build_organization_candidates, sorted by id.

        Returns:
            The winning match, or None.
        """
        jurisdiction = detect_entity_jurisdiction(full_name, self.config) or detect_entity_jurisdiction(
            short_name, self.config
        )

        for name in (full_name, short_name):
            normalized = normalize_company_name(name, config=self.config)
            if not normalized:
                continue
            for candidate in candidates:
                if candidate.normalized_name == normalized and not jurisdictions_conflict(
                    jurisdiction, candidate.jurisdiction
                ):
                    return OrganizationMatch(organization_id=candidate.organization_id, score=1.0, tier="exact")

        # The short name is too abbreviated for fuzzy matching
        if not full_name:
            return None

        full_normalized = normalize_company_name(full_name, config=self.config)
        tokens = tokenize(full_normalized)
        if not tokens or (len(tokens) == 1 and len(full_normalized) < self.config.min_fuzzy_name_length):
            return None

        match = self._best_token_match(tokens, candidates, jurisdiction, stripped=False)
        if match is not None:
            return match

        # Stripping must leave enough tokens that a generic word like AMERICAN cannot match everything
        stripped_tokens = tokenize(normalize_company_name(full_name, strip_noise_words=True, config=self.config))
        if len(stripped_tokens) < self.config.min_stripped_tokens:
            return None
        return self._best_token_match(stripped_tokens, candidates, jurisdiction, stripped=True)

    def resolve_organizations(self, applicant_ids: Iterable[int], result: ImportResult) -> ResolutionOutcome:
        """
        Link this run's applicants to organizations.

        Applicants that already have an organization link are left alone.

        Args:
            applicant_ids: Applicants touched by the current run.
            result: Run accumulator.

        Returns:
            Links created and applicants left unmatched.
        """
        wanted = set(applicant_ids)
        try:
            existing_pairs = {
                (a, o)
                for a, o in self.session.execute(
                    select(OrangeBookApplicantOrganization.applicant_id, OrangeBookApplicantOrganization.organization_id)
                )
            }
            applicants = [
                a
                for a in self.session.scalars(select(OrangeBookApplicant).order_by(OrangeBookApplicant.applicant_id))
                if a.applicant_id in wanted
            ]
            candidates = build_organization_candidates(
                (
                    (organization_id, name)
                    for organization_id, name in self.session.execute(
                        select(Organization.organization_id, Organization.organization_name).where(
                            Organization.organization_name.is_not(None)
                        )
                    )
                ),
                self.config,
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load organization matching state: {e}") from e

        logger.info(f"Loaded {len(candidates)} organizations into matching cache")
        already_linked = {a for a, _ in existing_pairs}
        new_links: list[OrangeBookApplicantOrganization] = []
        unmatched = 0

        try:
            for applicant in applicants:
                raise_if_cancelled(self.cancel_event)
                if applicant.applicant_id in already_linked:
                    continue

                match = self.match_organization(applicant.applicant_full_name, applicant.applicant_name, candidates)
                if match is None:
                    unmatched += 1
                    logger.warning(
                        f"No Organization match found for applicant '{applicant.applicant_name}' "
                        f"(full: '{applicant.applicant_full_name}')"
                    )
                    continue

                pair = (applicant.applicant_id, match.organization_id)
                if pair not in existing_pairs:
                    existing_pairs.add(pair)
                    new_links.append(
                        OrangeBookApplicantOrganization(
                            applicant_id=applicant.applicant_id, organization_id=match.organization_id
                        )
                    )
                    logger.debug(
                        f"Applicant '{applicant.applicant_name}' -> organization {match.organization_id} "
                        f"({match.tier}, score {match.score:.2f})"
                    )
        finally:
            # Links found before a cancellation are still saved
            self._save_links(new_links, "organization links")
            result.organization_matches_created += len(new_links)
            result.unmatched_applicants += unmatched

        logger.info(f"Organization matches: {len(new_links)} created, {unmatched} applicants unmatched")
        return ResolutionOutcome(created=len(new_links), unmatched=unmatched)

    # Ingredient -> IngredientSubstance

    def _match_substance(self, ingredient_upper: str, substances: list[tuple[int, str]]) -> Optional[int]:
        exact = [sid for sid, name in substances if name == ingredient_upper]
        if exact:
            return min(exact)

        if len(ingredient_upper) < self.config.min_substring_length:
            return None

        contained = [
            (abs(len(name) - len(ingredient_upper)), sid)
            for sid, name in substances
            if len(name) >= self.config.min_substring_length and (ingredient_upper in name or name in ingredient_upper)
        ]
        return min(contained)[1] if contained else None

    def resolve_ingredients(self, product_ingredients: dict[int, list[str]], result: ImportResult) -> ResolutionOutcome:
        """
        Link products to ingredient substances by name.

        An exact case-insensitive name match wins; otherwise a substring match
        in either direction, preferring the substance whose name length is
        closest to the ingredient's.

        Args:
            product_ingredients: product_id to its ingredient names.
            result: Run accumulator.

        Returns:
            Links created and distinct ingredient names left unmatched.
        """
        try:
            existing_pairs = {
                (p, s)
                for p, s in self.session.execute(
                    select(
                        OrangeBookProductIngredientSubstance.product_id,
                        OrangeBookProductIngredientSubstance.ingredient_substance_id,
                    )
                )
            }
            substances = [
                (sid, name.strip().upper())
                for sid, name in self.session.execute(
                    select(IngredientSubstance.ingredient_substance_id, IngredientSubstance.substance_name)
                    .where(IngredientSubstance.substance_name.is_not(None))
                    .order_by(IngredientSubstance.ingredient_substance_id)
                )
                if name.strip()
            ]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load ingredient matching state: {e}") from e

        match_cache: dict[str, Optional[int]] = {}
        new_links: list[OrangeBookProductIngredientSubstance] = []
        unmatched_names: set[str] = set()

        try:
            for product_id, ingredients in product_ingredients.items():
                raise_if_cancelled(self.cancel_event)
                for ingredient in ingredients:
                    upper = ingredient.strip().upper()
                    if upper not in match_cache:
                        match_cache[upper] = self._match_substance(upper, substances)

                    substance_id = match_cache[upper]
                    if substance_id is None:
                        unmatched_names.add(upper)
                        continue

                    pair = (product_id, substance_id)
                    if pair not in existing_pairs:
                        existing_pairs.add(pair)
                        new_links.append(
                            OrangeBookProductIngredientSubstance(product_id=product_id, ingredient_substance_id=substance_id)
                        )
        finally:
            self._save_links(new_links, "ingredient substance links")
            result.ingredient_substance_matches_created += len(new_links)
            result.unmatched_ingredients += len(unmatched_names)

        for name in sorted(unmatched_names):
            logger.warning(f"No IngredientSubstance match found for ingredient '{name}'")
        logger.info(
            f"Ingredient substance matches: {len(new_links)} created, {len(unmatched_names)} ingredients unmatched"
        )
        return ResolutionOutcome(created=len(new_links), unmatched=len(unmatched_names))

    # Product -> MarketingCategory

    def _categories_containing(self, numeric: str, categories: list[tuple[int, str]]) -> list[int]:
        if len(numeric) < self.config.min_substring_length:
            return []
        return [category_id for category_id, value in categories if numeric in value]

    def resolve_marketing_categories(
        self,
        product_app_numbers: dict[int, tuple[str, str]],
        result: ImportResult,
    ) -> ResolutionOutcome:
        """
        Link products to marketing categories by application number.

        The prefixed number ("NDA205613") is matched exactly first. When that
        misses, every category whose value contains the bare number is linked,
        which covers values stored as "205613" or "NDA 205613". Numbers shorter
        than ``min_substring_length`` never take the containment route.

        Args:
            product_app_numbers: product_id to (prefixed application number, bare appl_no).
            result: Run accumulator.

        Returns:
            Links created and products left unmatched.
        """
        try:
            existing_pairs = {
                (p, c)
                for p, c in self.session.execute(
                    select(
                        OrangeBookProductMarketingCategory.product_id,
                        OrangeBookProductMarketingCategory.marketing_category_id,
                    )
                )
            }
            categories = [
                (category_id, value.strip())
                for category_id, value in self.session.execute(
                    select(MarketingCategory.marketing_category_id, func.upper(MarketingCategory.application_id_value))
                    .where(MarketingCategory.application_id_value.is_not(None))
                    .order_by(MarketingCategory.marketing_category_id)
                )
            ]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load marketing category matching state: {e}") from e

        exact: dict[str, list[int]] = {}
        for category_id, value in categories:
            exact.setdefault(value, []).append(category_id)

        contained_cache: dict[str, list[int]] = {}
        new_links: list[OrangeBookProductMarketingCategory] = []
        unmatched = 0

        try:
            for product_id, (application_number, appl_no) in product_app_numbers.items():
                raise_if_cancelled(self.cancel_event)
                category_ids = exact.get(application_number.strip().upper())
                if not category_ids:
                    numeric = appl_no.strip().upper()
                    if numeric not in contained_cache:
                        contained_cache[numeric] = self._categories_containing(numeric, categories)
                    category_ids = contained_cache[numeric]

                if not category_ids:
                    unmatched += 1
                    logger.warning(
                        f"No MarketingCategory match found for product {product_id} (app number: '{application_number}')"
                    )
                    continue

                for category_id in category_ids:
                    pair = (product_id, category_id)
                    if pair not in existing_pairs:
                        existing_pairs.add(pair)
                        new_links.append(
                            OrangeBookProductMarketingCategory(product_id=product_id, marketing_category_id=category_id)
                        )
        finally:
            self._save_links(new_links, "marketing category links")
            result.marketing_category_matches_created += len(new_links)
            result.unmatched_products += unmatched

        logger.info(f"Marketing category matches: {len(new_links)} created, {unmatched} products unmatched")
        return ResolutionOutcome(created=len(new_links), unmatched=unmatched)

    def _save_links(self, links: list, what: str) -> None:
        if not links:
            return
        try:
            self.session.add_all(links)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            links.clear()
            raise PersistenceError(f"Failed to save {what}: {e}") from e
