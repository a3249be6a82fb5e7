"""Budget partitioning and price-range candidate filtering.

Each category gets a price window derived from the total budget and a static
fraction table. Candidates are filtered into that window in catalog order
and truncated to a fixed count to bound prompt size.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from . import config
from .categories import BudgetFractions, ComponentCategory, load_budget_fractions
from .errors import ConfigurationError
from .models import ComponentRecord, PriceRange

__all__ = ["BudgetAllocator"]

logger = logging.getLogger(__name__)


class BudgetAllocator:
    """Computes per-category price ranges and filters candidates into them."""

    def __init__(
        self,
        fractions: Optional[BudgetFractions] = None,
        max_candidates: int = config.MAX_CANDIDATES_PER_CATEGORY,
        min_price: float = config.MIN_COMPONENT_PRICE,
    ):
        self.fractions = dict(fractions) if fractions is not None else load_budget_fractions()
        missing = [c.value for c in ComponentCategory if c not in self.fractions]
        if missing:
            raise ConfigurationError(f"Budget fractions missing for: {', '.join(missing)}")
        self.max_candidates = max_candidates
        self.min_price = min_price

    def price_range(self, category: ComponentCategory, total_budget: float) -> PriceRange:
        """Price window for ``category``; both bounds scale linearly with the budget.

        Bounds are rounded to cents so filtering uses the same numbers the
        prompt shows.
        """
        low, high = self.fractions[category]
        return PriceRange(
            category=category,
            min_price=round(total_budget * low, 2),
            max_price=round(total_budget * high, 2),
        )

    def allocate(
        self,
        category: ComponentCategory,
        total_budget: float,
        candidates: Sequence[ComponentRecord],
    ) -> Tuple[PriceRange, List[ComponentRecord]]:
        """Compute the range for ``category`` and keep the candidates inside it.

        Storage parts are curated and skip the price filter. Everything else
        must cost at least the placeholder floor and lie within the range.
        At most ``max_candidates`` records are kept, first come first served.

        Args:
            category: Category being allocated.
            total_budget: Budget of the whole build.
            candidates: Catalog records in catalog order.

        Returns:
            (price range, filtered original records)
        """
        price_range = self.price_range(category, total_budget)
        if not candidates:
            return price_range, []

        df = pd.DataFrame(
            {
                "price": [record.price for record in candidates],
                "is_storage": [
                    record.category is ComponentCategory.STORAGE for record in candidates
                ],
            }
        )
        in_range = (
            (df["price"] >= self.min_price)
            & (df["price"] >= price_range.min_price)
            & (df["price"] <= price_range.max_price)
        )
        selected = df[df["is_storage"] | in_range].head(self.max_candidates)

        filtered = [candidates[i] for i in selected.index]
        logger.debug(
            f"{category.value}: {len(filtered)}/{len(candidates)} candidates in "
            f"[{price_range.min_price:.2f}, {price_range.max_price:.2f}]"
        )
        return price_range, filtered
