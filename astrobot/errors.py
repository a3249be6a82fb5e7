"""Exception hierarchy for the AstroBot API.

Only InvalidInputError and PersistenceError ever fail a build request.
Catalog, LLM and parse errors are recovered inside the pipeline and turn
into empty candidate lists or unresolved categories.
"""

__all__ = [
    "AstroBotError",
    "InvalidInputError",
    "ConfigurationError",
    "StorageError",
    "DocumentNotFoundError",
    "BuildNotFoundError",
    "CatalogFetchError",
    "SelectionParseError",
    "LLMInvocationError",
    "PersistenceError",
]


class AstroBotError(Exception):
    """Base class for all AstroBot errors."""


class InvalidInputError(AstroBotError):
    """Request input is missing or out of range."""


class ConfigurationError(AstroBotError):
    """Static configuration (e.g. the budget fraction table) is invalid."""


class StorageError(AstroBotError):
    """The document store failed to read or write."""


class DocumentNotFoundError(AstroBotError):
    """A document that must exist is missing."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document not found: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class BuildNotFoundError(AstroBotError):
    """No build is stored under the requested id."""

    def __init__(self, build_id: str) -> None:
        super().__init__(f"Build not found: {build_id}")
        self.build_id = build_id


class CatalogFetchError(AstroBotError):
    """The external parts catalog was unreachable or answered garbage."""

    def __init__(self, catalog_tag: str, message: str) -> None:
        super().__init__(f"Catalog fetch failed for {catalog_tag}: {message}")
        self.catalog_tag = catalog_tag


class SelectionParseError(AstroBotError):
    """The LLM answer could not be mapped back to a candidate."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class LLMInvocationError(AstroBotError):
    """The completion endpoint failed at the transport level."""


class PersistenceError(AstroBotError):
    """The finished build could not be saved."""

    def __init__(self, build_id: str, message: str) -> None:
        super().__init__(f"Failed to persist build {build_id}: {message}")
        self.build_id = build_id
