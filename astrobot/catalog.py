"""Parts catalog access: the Components cache and the catalog fetcher.

The fetcher asks the external parts catalog for one category at a time and
refreshes the Components cache with every record it receives. Storage parts
are curated: they are resolved from the cache by a fixed list of liens and
never fetched from the API.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence

import requests  # type: ignore[import-untyped]

from . import config
from .categories import ComponentCategory
from .errors import CatalogFetchError, StorageError
from .logging_utils import log_interaction
from .models import ComponentRecord, component_from_catalog_item
from .store import DocumentStore

__all__ = [
    "COMPONENTS_COLLECTION",
    "CATALOG_ENDPOINT",
    "CatalogCache",
    "CatalogFetcher",
    "create_session",
]

logger = logging.getLogger(__name__)

COMPONENTS_COLLECTION = "Components"
CATALOG_ENDPOINT = "/produit/byPaginationNew"

HEADERS = {
    "User-Agent": "astrobot-aibuilder/0.1",
    "Accept": "application/json",
}


def create_session() -> requests.Session:
    """Create a requests Session with connection pooling and JSON headers."""
    session = requests.Session()
    session.headers.update(HEADERS)
    session.headers.setdefault("Accept-Encoding", "gzip, deflate")
    return session


class CatalogCache:
    """Component records persisted by lien in the Components collection.

    A miss is not an error: ``get`` returns None and the caller goes to the
    external catalog. Store failures propagate as StorageError.
    """

    def __init__(self, store: DocumentStore, collection: str = COMPONENTS_COLLECTION):
        self._collection = store.collection(collection)

    def get(self, lien: str) -> Optional[ComponentRecord]:
        doc = self._collection.doc(lien).get()
        if doc is None:
            return None
        try:
            return ComponentRecord.from_dict(doc)
        except ValueError:
            logger.warning(f"Ignoring corrupt cached component: {lien}")
            return None

    def put(self, record: ComponentRecord) -> None:
        """Upsert a record by lien (idempotent)."""
        self._collection.doc(record.id).set(record.to_dict())

    def put_many(self, records: Iterable[ComponentRecord]) -> int:
        count = 0
        for record in records:
            self.put(record)
            count += 1
        return count


class CatalogFetcher:
    """Retrieves candidate components for one category."""

    def __init__(
        self,
        cache: CatalogCache,
        api_url: str = config.CATALOG_API_URL,
        session: Optional[requests.Session] = None,
        storage_liens: Optional[Sequence[str]] = None,
        timeout: float = config.CATALOG_REQUEST_TIMEOUT,
        max_workers: int = config.CATALOG_FETCH_WORKERS,
    ):
        self.cache = cache
        self.api_url = api_url.rstrip("/")
        self.session = session or create_session()
        self.storage_liens = list(config.STORAGE_LIENS if storage_liens is None else storage_liens)
        self.timeout = timeout
        self.max_workers = max(1, max_workers)

    def fetch_category(self, category: ComponentCategory) -> List[ComponentRecord]:
        """Fetch every candidate for a category, in catalog order.

        Never raises for catalog problems: a failed fetch yields an empty
        list and the category ends up unresolved.
        """
        if category is ComponentCategory.STORAGE:
            return self._resolve_storage()

        try:
            records = self._request_category(category.catalog_label)
        except CatalogFetchError as e:
            logger.warning(str(e))
            log_interaction(
                "catalog_fetch_error",
                {"category": category.value, "catalog_tag": category.catalog_label, "error": str(e)},
            )
            return []

        # Refresh the cache on every fetch, not only on a miss
        try:
            self.cache.put_many(records)
        except StorageError as e:
            logger.warning(f"Could not refresh Components cache for {category.value}: {e}")

        logger.info(f"Fetched {len(records)} components for {category.catalog_label}")
        return records

    def fetch_many(
        self, categories: Sequence[ComponentCategory]
    ) -> Dict[ComponentCategory, List[ComponentRecord]]:
        """Fetch independent categories concurrently.

        Results are keyed by category in the order requested.
        """
        if not categories:
            return {}
        workers = min(self.max_workers, len(categories))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self.fetch_category, categories))
        return dict(zip(categories, results))

    def _request_category(self, catalog_tag: str) -> List[ComponentRecord]:
        """POST the category filter to the catalog and normalize the answer.

        Raises:
            CatalogFetchError: On transport errors, non-2xx status or a body
                that is not a JSON list.
        """
        url = f"{self.api_url}{CATALOG_ENDPOINT}"
        try:
            resp = self.session.post(
                url,
                json={"filscateg": {"titre": catalog_tag}},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.exceptions.RequestException as e:
            raise CatalogFetchError(catalog_tag, str(e)) from e
        except ValueError as e:
            raise CatalogFetchError(catalog_tag, f"invalid JSON body: {e}") from e

        if not isinstance(payload, list):
            raise CatalogFetchError(catalog_tag, f"expected a list, got {type(payload).__name__}")

        records: List[ComponentRecord] = []
        skipped = 0
        for item in payload:
            record = component_from_catalog_item(item)
            if record is None:
                skipped += 1
                continue
            records.append(record)

        if skipped:
            logger.debug(f"Skipped {skipped} unusable catalog items for {catalog_tag}")
        return records

    def _resolve_storage(self) -> List[ComponentRecord]:
        """Look up the curated storage liens in the cache, skipping misses."""
        records: List[ComponentRecord] = []
        for lien in self.storage_liens:
            try:
                record = self.cache.get(lien)
            except StorageError as e:
                logger.warning(f"Components cache unavailable for storage lookup: {e}")
                return records
            if record is None:
                logger.info(f"Curated storage part not cached: {lien}")
                continue
            records.append(record)
        return records
