"""Build persistence.

Builds live one document per build in the "builds" collection. Every write
path goes through BuildRecord so the stored total always equals the sum of
the stored component prices.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .categories import ComponentCategory
from .errors import BuildNotFoundError, InvalidInputError
from .models import BuildRecord, ComponentRecord
from .store import DocumentStore

__all__ = ["BUILDS_COLLECTION", "BuildRepository", "parse_component_slots"]

logger = logging.getLogger(__name__)

BUILDS_COLLECTION = "builds"


def parse_component_slots(
    payload: Mapping[str, Any],
) -> Dict[ComponentCategory, Optional[ComponentRecord]]:
    """Extract component slots from a request body.

    Slots may be keyed by category value ("cpu") or catalog label
    ("PROCESSEUR"). Only keys present in the payload are returned; an
    explicit null clears the slot.

    Raises:
        InvalidInputError: If a slot is not a valid component object.
    """
    slots: Dict[ComponentCategory, Optional[ComponentRecord]] = {}
    for key, value in payload.items():
        try:
            category = ComponentCategory.from_value(key)
        except ValueError:
            continue
        if value is None:
            slots[category] = None
            continue
        if not isinstance(value, Mapping):
            raise InvalidInputError(f"{key} must be a component object or null")
        try:
            slots[category] = ComponentRecord.from_dict(value)
        except ValueError as e:
            raise InvalidInputError(f"Invalid component for {key}: {e}") from e
    return slots


class BuildRepository:
    """CRUD over BuildRecord documents."""

    def __init__(self, store: DocumentStore, collection: str = BUILDS_COLLECTION):
        self._collection = store.collection(collection)

    def save(self, build: BuildRecord) -> BuildRecord:
        self._collection.doc(build.build_id).set(build.to_dict())
        logger.info(f"Saved build {build.build_id} (total {build.total_price:.2f})")
        return build

    def get(self, build_id: str) -> BuildRecord:
        """Raises BuildNotFoundError if the build does not exist."""
        doc = self._collection.doc(build_id).get()
        if doc is None:
            raise BuildNotFoundError(build_id)
        return BuildRecord.from_dict(doc)

    def list(self, owner_user_id: Optional[str] = None) -> List[BuildRecord]:
        if owner_user_id:
            docs = self._collection.where("owner_user_id", "==", owner_user_id)
        else:
            docs = self._collection.stream()
        return [BuildRecord.from_dict(doc) for doc in docs]

    def create(
        self,
        components: Mapping[ComponentCategory, Optional[ComponentRecord]],
        owner_user_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> BuildRecord:
        """Store a manually assembled build."""
        build = BuildRecord.create(components, owner_user_id=owner_user_id, display_name=display_name)
        return self.save(build)

    def update(
        self,
        build_id: str,
        components: Optional[Mapping[ComponentCategory, Optional[ComponentRecord]]] = None,
        display_name: Optional[str] = None,
    ) -> BuildRecord:
        """Overwrite the supplied slots/name and recompute the total."""
        updated = self.get(build_id).with_updates(components=components, display_name=display_name)
        return self.save(updated)

    def delete(self, build_id: str) -> BuildRecord:
        """Delete a build and return what was stored."""
        build = self.get(build_id)
        self._collection.doc(build_id).delete()
        logger.info(f"Deleted build {build_id}")
        return build
