"""Component category registry for the AI builder.

This module defines the closed set of component kinds a build is made of,
the translation between those kinds and the parts catalog's own category
labels, the order in which the pipeline resolves them, and the budget
fraction table used to derive each kind's price range.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import ConfigurationError

__all__ = [
    "ComponentCategory",
    "CATEGORY_CONFIG",
    "STORAGE_CATALOG_TAGS",
    "PIPELINE_STAGES",
    "DEFAULT_BUDGET_FRACTIONS",
    "BudgetFractions",
    "load_budget_fractions",
]


class ComponentCategory(str, Enum):
    """One slot of a build."""

    CPU = "cpu"
    MOTHERBOARD = "motherboard"
    GPU = "gpu"
    RAM = "ram"
    STORAGE = "storage"
    PSU = "psu"
    CASE = "case"
    COOLING = "cooling"

    @property
    def catalog_label(self) -> str:
        """Category title used by the parts catalog and in LLM answers."""
        return CATEGORY_CONFIG[self]["catalog_label"]

    @property
    def display_name(self) -> str:
        return CATEGORY_CONFIG[self]["display_name"]

    @property
    def description(self) -> str:
        return CATEGORY_CONFIG[self]["description"]

    @classmethod
    def from_catalog_tag(cls, tag: Optional[str]) -> Optional["ComponentCategory"]:
        """Translate a raw catalog tag (e.g. "CARTE MÈRE") to a category.

        Returns None for tags outside the taxonomy.
        """
        if not tag or not isinstance(tag, str):
            return None
        return _CATALOG_TAG_INDEX.get(tag.strip().upper())

    @classmethod
    def from_value(cls, value: str) -> "ComponentCategory":
        """Parse either the enum value ("cpu") or the catalog label."""
        try:
            return cls(value)
        except ValueError:
            category = cls.from_catalog_tag(value)
            if category is None:
                raise
            return category


# =============================================================================
# Category Definitions
# =============================================================================
# Each category defines:
#   - catalog_label: Title sent to the parts catalog and used as answer key
#   - display_name: Human-readable name
#   - description: Short description for prompts

CATEGORY_CONFIG: Dict[ComponentCategory, Dict[str, Any]] = {
    ComponentCategory.CPU: {
        "catalog_label": "PROCESSEUR",
        "display_name": "Processor",
        "description": "Central processing unit",
    },
    ComponentCategory.MOTHERBOARD: {
        "catalog_label": "CARTE MÈRE",
        "display_name": "Motherboard",
        "description": "Main board; socket and chipset must match the processor",
    },
    ComponentCategory.GPU: {
        "catalog_label": "CARTE GRAPHIQUE",
        "display_name": "Graphics Card",
        "description": "Dedicated graphics card",
    },
    ComponentCategory.RAM: {
        "catalog_label": "BARETTE MÉMOIRE",
        "display_name": "Memory",
        "description": "RAM modules; generation must match the motherboard",
    },
    ComponentCategory.STORAGE: {
        "catalog_label": "STORAGE",
        "display_name": "Storage",
        "description": "SSD, NVMe or hard drive",
    },
    ComponentCategory.PSU: {
        "catalog_label": "ALIMENTATION",
        "display_name": "Power Supply",
        "description": "Power supply unit sized for the selected parts",
    },
    ComponentCategory.CASE: {
        "catalog_label": "BOITIER",
        "display_name": "Case",
        "description": "Chassis fitting the motherboard form factor",
    },
    ComponentCategory.COOLING: {
        "catalog_label": "REFROIDISSEMENT",
        "display_name": "Cooling",
        "description": "CPU cooler or liquid cooling",
    },
}

# Catalog tags that all denote storage parts
STORAGE_CATALOG_TAGS = frozenset({"DISQUE-SSD", "DISQUE-NVME", "DISQUE-HDD", "STORAGE"})

_CATALOG_TAG_INDEX: Dict[str, ComponentCategory] = {
    config["catalog_label"]: category for category, config in CATEGORY_CONFIG.items()
}
_CATALOG_TAG_INDEX.update({tag: ComponentCategory.STORAGE for tag in STORAGE_CATALOG_TAGS})

# CPU and motherboard are chosen together; everything after sees all earlier picks
PIPELINE_STAGES: List[Tuple[ComponentCategory, ...]] = [
    (ComponentCategory.CPU, ComponentCategory.MOTHERBOARD),
    (ComponentCategory.GPU,),
    (ComponentCategory.RAM,),
    (ComponentCategory.STORAGE,),
    (ComponentCategory.PSU,),
    (ComponentCategory.CASE,),
    (ComponentCategory.COOLING,),
]


# =============================================================================
# Budget Fractions
# =============================================================================
# Each category is priced independently against the TOTAL budget, so the
# ranges overlap and the fractions do not sum to 1.

BudgetFractions = Dict[ComponentCategory, Tuple[float, float]]

DEFAULT_BUDGET_FRACTIONS: BudgetFractions = {
    ComponentCategory.CPU: (0.1517, 0.3209),
    ComponentCategory.MOTHERBOARD: (0.0809, 0.1604),
    ComponentCategory.GPU: (0.2022, 0.4011),
    ComponentCategory.RAM: (0.0506, 0.1604),
    ComponentCategory.STORAGE: (0.0101, 0.2674),
    ComponentCategory.PSU: (0.0303, 0.1604),
    ComponentCategory.CASE: (0.0303, 0.1070),
    ComponentCategory.COOLING: (0.0506, 0.1283),
}


def _parse_bounds(key: str, value: Any) -> Tuple[float, float]:
    if isinstance(value, dict):
        low, high = value.get("min"), value.get("max")
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        low, high = value
    else:
        raise ConfigurationError(f"Budget fraction for {key} must be {{min, max}}")

    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (low, high)):
        raise ConfigurationError(f"Budget fraction bounds for {key} must be numbers")
    if low < 0 or high < 0:
        raise ConfigurationError(f"Budget fraction bounds for {key} must be non-negative")
    if low > high:
        raise ConfigurationError(f"Budget fraction min > max for {key}")
    return float(low), float(high)


def load_budget_fractions(path: Optional[Union[str, Path]] = None) -> BudgetFractions:
    """Load the budget fraction table.

    Without a path the canonical defaults are returned. A JSON file maps
    category values (or catalog labels) to ``{"min": x, "max": y}``; listed
    categories override the defaults, the rest keep them.

    Args:
        path: Optional JSON file.

    Returns:
        Fraction table with one (min, max) pair per category.

    Raises:
        ConfigurationError: If the file is unreadable or malformed.
    """
    fractions = dict(DEFAULT_BUDGET_FRACTIONS)
    if not path:
        return fractions

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read budget fractions from {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError("Budget fraction file must contain a JSON object")

    for key, value in raw.items():
        try:
            category = ComponentCategory.from_value(key)
        except ValueError as e:
            raise ConfigurationError(f"Unknown category in budget fractions: {key}") from e
        fractions[category] = _parse_bounds(key, value)

    return fractions
