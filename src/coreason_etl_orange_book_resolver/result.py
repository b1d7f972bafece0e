# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_orange_book_resolver

"""Result accumulator returned by an import run."""

from typing import Optional

from pydantic import BaseModel, Field, computed_field


class ImportResult(BaseModel):
    """
    Counters and errors accumulated over a single import run.

    An instance is created at the start of a run, mutated by each stage and
    returned to the caller. It is never shared between runs.
    """

    rows_processed: int = 0
    malformed_rows_skipped: int = 0

    applicants_created: int = 0
    applicants_updated: int = 0
    products_created: int = 0
    products_updated: int = 0

    organization_matches_created: int = 0
    ingredient_substance_matches_created: int = 0
    marketing_category_matches_created: int = 0

    unmatched_applicants: int = 0
    unmatched_ingredients: int = 0
    unmatched_products: int = 0

    patent_use_codes_created: int = 0
    patent_use_codes_updated: int = 0

    patents_created: int = 0
    patents_updated: int = 0
    patents_linked_to_product: int = 0
    unlinked_patents: int = 0

    exclusivity_created: int = 0
    exclusivity_updated: int = 0
    exclusivity_linked_to_product: int = 0
    unlinked_exclusivity: int = 0

    errors: list[str] = Field(default_factory=list, description="Ordered error messages")
    cancelled: bool = False
    message: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        """True when the run finished without errors and was not cancelled."""
        return not self.errors and not self.cancelled

    def add_error(self, message: str) -> None:
        """Append an error message, preserving order."""
        self.errors.append(message)

    def summary(self) -> str:
        """Human readable one-line summary of the run."""
        return (
            f"{self.applicants_created + self.applicants_updated} applicants, "
            f"{self.products_created + self.products_updated} products, "
            f"{self.organization_matches_created} organization matches, "
            f"{self.ingredient_substance_matches_created} ingredient matches, "
            f"{self.marketing_category_matches_created} marketing category matches."
        )
