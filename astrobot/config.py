"""Centralized configuration for the AstroBot API."""

import os
from pathlib import Path


def _default_path(*parts: str) -> str:
    """Path under the current working directory (never inside the installed package)."""
    return str(Path.cwd().joinpath(*parts))


# Document store - SQLite file holding the builds and Components collections
DB_PATH = os.getenv("DB_PATH", _default_path("data", "astrobot.db"))

# LLM Configuration
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")

# External parts catalog (MegaPC client API)
CATALOG_API_URL = os.getenv("CATALOG_API_URL", "https://api.megapc.tn")
CATALOG_REQUEST_TIMEOUT = float(os.getenv("CATALOG_REQUEST_TIMEOUT", "15"))
CATALOG_FETCH_WORKERS = int(os.getenv("CATALOG_FETCH_WORKERS", "5"))

# Candidate selection limits (per category)
MAX_CANDIDATES_PER_CATEGORY = int(os.getenv("MAX_CANDIDATES_PER_CATEGORY", "5"))
# Catalog entries below this price are placeholders
MIN_COMPONENT_PRICE = float(os.getenv("MIN_COMPONENT_PRICE", "10"))

# Curated storage parts, resolved from the Components cache instead of the API
_DEFAULT_STORAGE_LIENS = ",".join(
    [
        "msi-spatium-m450-500go-pcie-4-0-nvme-m-2",
        "msi-spatium-m450-1to-pcie-4-0-nvme-m-2",
        "samsung-980-500go-pcie-3-0-nvme-m-2",
        "kingston-nv2-1to-pcie-4-0-nvme-m-2",
        "crucial-bx500-480go-sata-2-5",
    ]
)
STORAGE_LIENS = [
    lien.strip()
    for lien in os.getenv("STORAGE_LIENS", _DEFAULT_STORAGE_LIENS).split(",")
    if lien.strip()
]

# Optional JSON file overriding the budget fraction table
BUDGET_FRACTIONS_FILE = os.getenv("BUDGET_FRACTIONS_FILE", "")

# Interaction logs (JSONL)
LOG_DIR = os.getenv("LOG_DIR", _default_path("logs"))

# Flask app settings
# PORT may be set by the hosting platform; fall back to FLASK_PORT or 5000.
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"
