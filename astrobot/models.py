"""Data models for components, budget ranges and builds."""

import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .categories import PIPELINE_STAGES, ComponentCategory
from .errors import InvalidInputError

__all__ = [
    "ComponentRecord",
    "PriceRange",
    "UserInput",
    "SelectionContext",
    "BuildRecord",
    "component_from_catalog_item",
    "compute_total_price",
    "normalize_lien",
    "BUILD_SLOTS",
]

# Every category in pipeline order
BUILD_SLOTS: List[ComponentCategory] = [c for stage in PIPELINE_STAGES for c in stage]


def normalize_lien(lien: str) -> str:
    """Normalize a catalog lien for fuzzy comparison.

    "MSI-Spatium  M450" and "msi spatium-m450" both become "msi spatium m450".
    """
    return re.sub(r"\s+", " ", lien.replace("-", " ")).strip().lower()


def _to_price(value: Any) -> Optional[float]:
    """Parse a catalog price, returning None for missing/invalid values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", ".").strip()
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(price) or math.isinf(price) or price < 0:
        return None
    return price


def _to_stock(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class ComponentRecord:
    """One purchasable part from the catalog.

    Records are never mutated; a refetch replaces them in the cache.
    """

    id: str
    display_name: str
    price: float
    category_tag: str = ""
    stock_level: Optional[int] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("ComponentRecord requires a lien")
        if self.price < 0:
            raise ValueError(f"Negative price for {self.id}: {self.price}")

    @property
    def lien(self) -> str:
        return self.id

    @property
    def category(self) -> Optional[ComponentCategory]:
        return ComponentCategory.from_catalog_tag(self.category_tag)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the catalog's document shape."""
        return {
            "lien": self.id,
            "title_fr": self.display_name,
            "price": self.price,
            "stock": self.stock_level,
            "nFilsCategs": self.category_tag,
            "attributes": dict(self.attributes),
        }

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Reduced form sent to the LLM."""
        return {"lien": self.id, "price": self.price}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ComponentRecord":
        """Create from a stored document.

        Raises:
            ValueError: If the lien or price is missing or invalid.
        """
        record = component_from_catalog_item(data)
        if record is None:
            raise ValueError(f"Invalid component document: {dict(data)!r}")
        return record


def component_from_catalog_item(item: Mapping[str, Any]) -> Optional[ComponentRecord]:
    """Normalize one raw catalog object.

    Args:
        item: Raw object with title_fr, price, stock, lien, nFilsCategs.

    Returns:
        ComponentRecord, or None if the lien or price is unusable.
    """
    if not isinstance(item, Mapping):
        return None

    lien = item.get("lien")
    if not isinstance(lien, str) or not lien.strip():
        return None

    price = _to_price(item.get("price"))
    if price is None:
        return None

    # nFilsCategs is a category path from the API, a plain string once cached
    categs = item.get("nFilsCategs")
    if isinstance(categs, (list, tuple)):
        category_tag = str(categs[0]) if categs else ""
    elif isinstance(categs, str):
        category_tag = categs
    else:
        category_tag = ""

    attributes = item.get("attributes") or {}
    if not isinstance(attributes, Mapping):
        attributes = {}

    return ComponentRecord(
        id=lien.strip(),
        display_name=str(item.get("title_fr") or item.get("title") or lien).strip(),
        price=price,
        category_tag=category_tag.strip(),
        stock_level=_to_stock(item.get("stock")),
        attributes={str(k): str(v) for k, v in attributes.items()},
    )


@dataclass(frozen=True)
class PriceRange:
    """Admissible price window for one category of one build request."""

    category: ComponentCategory
    min_price: float
    max_price: float

    def __post_init__(self) -> None:
        if self.min_price < 0 or self.max_price < 0:
            raise ValueError("Price range bounds must be non-negative")
        if self.min_price > self.max_price:
            raise ValueError(f"Invalid price range {self.min_price} > {self.max_price}")

    def contains(self, price: float) -> bool:
        return self.min_price <= price <= self.max_price

    def to_dict(self) -> Dict[str, float]:
        return {"min": round(self.min_price, 2), "max": round(self.max_price, 2)}


@dataclass
class UserInput:
    """What the user asked for."""

    budget: float
    purpose: str = ""
    prefs: str = ""

    def validate(self) -> None:
        """Raise InvalidInputError unless the budget is a positive number."""
        budget = self.budget
        if isinstance(budget, bool) or not isinstance(budget, (int, float)):
            raise InvalidInputError("budget must be a number")
        if math.isnan(budget) or math.isinf(budget) or budget <= 0:
            raise InvalidInputError("budget must be greater than 0")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserInput":
        """Create from a request body and validate it.

        Raises:
            InvalidInputError: If the budget is missing, not a number or <= 0.
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError("request body must be a JSON object")

        budget = data.get("budget")
        if isinstance(budget, str):
            try:
                budget = float(budget)
            except ValueError as e:
                raise InvalidInputError("budget must be a number") from e
        if budget is None:
            raise InvalidInputError("budget is required")

        purpose = data.get("purpose") or ""
        prefs = data.get("prefs") or ""
        if not isinstance(purpose, str) or not isinstance(prefs, str):
            raise InvalidInputError("purpose and prefs must be strings")

        user_input = cls(budget=budget, purpose=purpose.strip(), prefs=prefs.strip())
        user_input.validate()
        return user_input

    def to_dict(self) -> Dict[str, Any]:
        return {"budget": self.budget, "purpose": self.purpose, "prefs": self.prefs}


@dataclass
class SelectionContext:
    """Accumulator threaded through one build generation.

    ``selections`` only grows: a category is resolved exactly once, with
    either a record or None for "unresolved".
    """

    user_input: UserInput
    selections: Dict[ComponentCategory, Optional[ComponentRecord]] = field(default_factory=dict)
    remaining: List[ComponentCategory] = field(default_factory=lambda: list(BUILD_SLOTS))

    def is_resolved(self, category: ComponentCategory) -> bool:
        return category in self.selections

    def resolve(self, category: ComponentCategory, record: Optional[ComponentRecord]) -> None:
        if self.is_resolved(category):
            raise ValueError(f"Category already resolved: {category.value}")
        self.selections[category] = record
        if category in self.remaining:
            self.remaining.remove(category)

    def snapshot(self) -> Dict[str, Optional[Dict[str, Any]]]:
        """Resolved selections keyed by catalog label, ready for json.dumps."""
        return {
            category.catalog_label: record.to_dict() if record else None
            for category, record in self.selections.items()
        }


def compute_total_price(slots: Mapping[ComponentCategory, Optional[ComponentRecord]]) -> float:
    """Sum the price of every resolved slot."""
    return round(sum(record.price for record in slots.values() if record is not None), 2)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass
class BuildRecord:
    """A persisted build: one slot per category plus its derived total.

    ``total_price`` is always recomputed from the slots; use ``create`` and
    ``with_updates`` rather than editing it directly.
    """

    build_id: str
    created_at: datetime
    components: Dict[ComponentCategory, Optional[ComponentRecord]]
    total_price: float
    owner_user_id: Optional[str] = None
    display_name: Optional[str] = None
    modified_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        components: Mapping[ComponentCategory, Optional[ComponentRecord]],
        owner_user_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> "BuildRecord":
        slots = {category: components.get(category) for category in BUILD_SLOTS}
        return cls(
            build_id=str(uuid.uuid4()),
            created_at=_utcnow(),
            components=slots,
            total_price=compute_total_price(slots),
            owner_user_id=owner_user_id,
            display_name=display_name,
        )

    def with_updates(
        self,
        components: Optional[Mapping[ComponentCategory, Optional[ComponentRecord]]] = None,
        display_name: Optional[str] = None,
    ) -> "BuildRecord":
        """Overwrite the given slots/name and recompute the total."""
        slots = dict(self.components)
        if components:
            slots.update(components)
        return BuildRecord(
            build_id=self.build_id,
            created_at=self.created_at,
            components=slots,
            total_price=compute_total_price(slots),
            owner_user_id=self.owner_user_id,
            display_name=display_name if display_name is not None else self.display_name,
            modified_at=_utcnow(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization and storage."""
        data: Dict[str, Any] = {
            "build_id": self.build_id,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat() if self.modified_at else None,
            "owner_user_id": self.owner_user_id,
            "display_name": self.display_name,
            "total_price": self.total_price,
        }
        for category in BUILD_SLOTS:
            record = self.components.get(category)
            data[category.value] = record.to_dict() if record else None
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BuildRecord":
        """Create from a stored document."""
        components: Dict[ComponentCategory, Optional[ComponentRecord]] = {}
        for category in BUILD_SLOTS:
            slot = data.get(category.value)
            components[category] = ComponentRecord.from_dict(slot) if slot else None
        return cls(
            build_id=data["build_id"],
            created_at=_parse_timestamp(data.get("created_at")) or _utcnow(),
            components=components,
            total_price=float(data.get("total_price", compute_total_price(components))),
            owner_user_id=data.get("owner_user_id"),
            display_name=data.get("display_name"),
            modified_at=_parse_timestamp(data.get("modified_at")),
        )
