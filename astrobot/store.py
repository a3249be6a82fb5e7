"""SQLite-backed document store.

Documents are JSON objects addressed by (collection, id), mirroring the
collection/doc API of a hosted document database:

    store.collection("builds").doc(build_id).set({...})
    store.collection("builds").where("owner_user_id", "==", user_id)

Each operation opens its own connection so the store can be shared across
threads (catalog prefetching writes to the Components collection in
parallel). Writes are last-write-wins.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Union

from .errors import DocumentNotFoundError, StorageError

__all__ = ["DocumentStore", "CollectionRef", "DocumentRef"]

_SUPPORTED_OPERATORS = ("==", "array-contains")


class DocumentStore:
    """Keyed JSON document map persisted in one SQLite table."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        self._ensure_table_exists()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get SQLite database connection, translating errors to StorageError."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open document store {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def _ensure_table_exists(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data JSON NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (collection, doc_id)
                )
            """)

    def collection(self, name: str) -> "CollectionRef":
        return CollectionRef(self, name)

    # Low-level operations used by the refs

    def _get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        return json.loads(row["data"]) if row else None

    def _set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        payload = json.dumps(data, ensure_ascii=False)
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO documents (collection, doc_id, data, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(collection, doc_id)
                DO UPDATE SET data = excluded.data, updated_at = CURRENT_TIMESTAMP
                """,
                (collection, doc_id, payload),
            )

    def _update(self, collection: str, doc_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            merged = {**json.loads(row["data"]), **partial}
            conn.execute(
                """
                UPDATE documents SET data = ?, updated_at = CURRENT_TIMESTAMP
                WHERE collection = ? AND doc_id = ?
                """,
                (json.dumps(merged, ensure_ascii=False), collection, doc_id),
            )
        return merged

    def _delete(self, collection: str, doc_id: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
        return cursor.rowcount > 0

    def _stream(self, collection: str) -> List[Dict[str, Any]]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT data FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]


class DocumentRef:
    """Handle on one document."""

    def __init__(self, store: DocumentStore, collection: str, doc_id: str):
        if not doc_id:
            raise StorageError("Document id must not be empty")
        self._store = store
        self.collection = collection
        self.id = doc_id

    def get(self) -> Optional[Dict[str, Any]]:
        """Return the document, or None if it does not exist."""
        return self._store._get(self.collection, self.id)

    def exists(self) -> bool:
        return self.get() is not None

    def set(self, data: Dict[str, Any]) -> None:
        """Create or replace the document."""
        self._store._set(self.collection, self.id, data)

    def update(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Merge top-level fields into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        return self._store._update(self.collection, self.id, partial)

    def delete(self) -> bool:
        """Delete the document; returns False if it was already gone."""
        return self._store._delete(self.collection, self.id)


class CollectionRef:
    """Handle on a named collection."""

    def __init__(self, store: DocumentStore, name: str):
        self._store = store
        self.name = name

    def doc(self, doc_id: str) -> DocumentRef:
        return DocumentRef(self._store, self.name, doc_id)

    def stream(self) -> List[Dict[str, Any]]:
        """All documents of the collection, in insertion order."""
        return self._store._stream(self.name)

    def where(self, field: str, op: str, value: Any) -> List[Dict[str, Any]]:
        """Simple equality / array-contains query.

        Args:
            field: Top-level document field.
            op: "==" or "array-contains".
            value: Value to compare against.

        Returns:
            Matching documents in insertion order.
        """
        if op not in _SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported query operator: {op}")

        results = []
        for doc in self.stream():
            current = doc.get(field)
            if op == "==" and current == value:
                results.append(doc)
            elif op == "array-contains" and isinstance(current, list) and value in current:
                results.append(doc)
        return results
