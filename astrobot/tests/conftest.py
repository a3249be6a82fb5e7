"""Shared test fixtures and utilities for the astrobot test suite."""

import json
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from astrobot import config
from astrobot.catalog import CatalogCache, CatalogFetcher
from astrobot.categories import ComponentCategory
from astrobot.models import ComponentRecord
from astrobot.store import DocumentStore


class StubLLM:
    """Canned LLM: answers each prompt with the entries it is asked for.

    ``answers`` maps catalog label to the answer object for that label, e.g.
    ``{"PROCESSEUR": {"lien": "cpu-i5", "index": 0}}``. Only labels the
    prompt asks for are included in the reply. A ``responder`` callable, if
    given, overrides this and receives the raw prompt.
    """

    def __init__(
        self,
        answers: Optional[Dict[str, Any]] = None,
        responder: Optional[Callable[[str], str]] = None,
    ):
        self.answers = answers or {}
        self.responder = responder
        self.prompts: List[str] = []

    @staticmethod
    def asks_for(prompt: str, label: str) -> bool:
        return f'"{label}": {{"lien": string' in prompt

    def invoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.responder is not None:
            return self.responder(prompt)
        reply = {
            label: answer for label, answer in self.answers.items() if self.asks_for(prompt, label)
        }
        return json.dumps(reply, ensure_ascii=False)


def raw_item(lien: str, price: Any, tag: str, title: Optional[str] = None, stock: int = 3) -> Dict[str, Any]:
    """One object as returned by the parts catalog API."""
    return {
        "title_fr": title or lien.replace("-", " ").upper(),
        "price": price,
        "stock": stock,
        "lien": lien,
        "nFilsCategs": [tag],
    }


# Budget 3000 ranges with the default fractions:
#   PROCESSEUR [455.1, 962.7]   CARTE MÈRE [242.7, 481.2]   CARTE GRAPHIQUE [606.6, 1203.3]
#   BARETTE MÉMOIRE [151.8, 481.2]   ALIMENTATION [90.9, 481.2]
#   BOITIER [90.9, 321.0]   REFROIDISSEMENT [151.8, 384.9]
CATALOG_ITEMS: Dict[str, List[Dict[str, Any]]] = {
    "PROCESSEUR": [
        raw_item("intel-core-i5-14600k", 600, "PROCESSEUR"),
        raw_item("intel-celeron-g6900-tray", 5, "PROCESSEUR"),
        raw_item("intel-core-i7-14700k", 900, "PROCESSEUR"),
        raw_item("intel-core-i9-14900ks", 1500, "PROCESSEUR"),
    ],
    "CARTE MÈRE": [
        raw_item("msi-pro-b760-p-wifi-ddr5", 300, "CARTE MÈRE"),
        raw_item("asus-rog-strix-z790-e", 450, "CARTE MÈRE"),
    ],
    "CARTE GRAPHIQUE": [
        raw_item("msi-rtx-4070-ventus-2x", 700, "CARTE GRAPHIQUE"),
        raw_item("gigabyte-rtx-4080-super-gaming-oc", 1150, "CARTE GRAPHIQUE"),
    ],
    "BARETTE MÉMOIRE": [raw_item("corsair-vengeance-32go-ddr5-6000", 200, "BARETTE MÉMOIRE")],
    "ALIMENTATION": [raw_item("msi-mag-a850gl-pcie5", 150, "ALIMENTATION")],
    "BOITIER": [raw_item("lian-li-lancool-216", 120, "BOITIER")],
    "REFROIDISSEMENT": [raw_item("arctic-liquid-freezer-iii-360", 180, "REFROIDISSEMENT")],
}

STORAGE_LIENS = ["msi-spatium-m450-500go-pcie-4-0-nvme-m-2", "not-in-cache-ssd"]


def make_catalog_session(items_by_tag: Dict[str, List[Dict[str, Any]]]) -> MagicMock:
    """Mock requests.Session answering POSTs from ``items_by_tag``."""
    session = MagicMock()

    def _post(url, json=None, timeout=None):
        tag = json["filscateg"]["titre"]
        resp = MagicMock()
        resp.status_code = 200
        resp.raise_for_status.return_value = None
        resp.json.return_value = items_by_tag.get(tag, [])
        return resp

    session.post.side_effect = _post
    return session


@pytest.fixture(autouse=True)
def isolated_log_dir(tmp_path, monkeypatch):
    """Write interaction logs under the test's tmp dir."""
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(config, "LOG_DIR", str(log_dir))
    return log_dir


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path / "astrobot.db")


@pytest.fixture
def cache(store):
    return CatalogCache(store)


@pytest.fixture
def storage_record():
    return ComponentRecord(
        id="msi-spatium-m450-500go-pcie-4-0-nvme-m-2",
        display_name="MSI SPATIUM M450 500GO",
        price=60.0,
        category_tag="DISQUE-NVME",
        stock_level=12,
    )


@pytest.fixture
def catalog_session():
    return make_catalog_session(CATALOG_ITEMS)


@pytest.fixture
def fetcher(cache, catalog_session, storage_record):
    cache.put(storage_record)
    return CatalogFetcher(
        cache,
        api_url="https://catalog.test",
        session=catalog_session,
        storage_liens=STORAGE_LIENS,
        max_workers=2,
    )


@pytest.fixture
def make_component():
    """Factory for ComponentRecord test data."""

    def _make(
        lien: str,
        price: float,
        category: ComponentCategory = ComponentCategory.CPU,
        **kwargs: Any,
    ) -> ComponentRecord:
        return ComponentRecord(
            id=lien,
            display_name=kwargs.pop("display_name", lien.upper()),
            price=price,
            category_tag=kwargs.pop("category_tag", category.catalog_label),
            **kwargs,
        )

    return _make


@pytest.fixture
def gaming_answers():
    """Index 0 for every category."""
    return {
        category.catalog_label: {"lien": "ignored", "index": 0} for category in ComponentCategory
    }
