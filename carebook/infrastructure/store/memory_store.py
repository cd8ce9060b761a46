import copy
import threading
import uuid
from typing import Any, Dict, List, Optional

from ...application.ports.document_store import DocumentStore
from ...exceptions import NotFoundError


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def matches(document: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Field-equality match with json-server semantics (values compared as text)."""
    if not filters:
        return True
    for key, expected in filters.items():
        if key not in document or _as_text(document[key]) != _as_text(expected):
            return False
    return True


class InMemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._store: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._store.setdefault(collection, {})

    def list(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._collection(collection).values() if matches(d, filters)]

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        with self._lock:
            doc = self._collection(collection).get(str(doc_id))
            if doc is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            return copy.deepcopy(doc)

    def create(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            doc = copy.deepcopy(document)
            doc_id = str(doc.get("id") or uuid.uuid4().hex)
            doc["id"] = doc_id
            self._collection(collection)[doc_id] = doc
            return copy.deepcopy(doc)

    def patch(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            doc = self._collection(collection).get(str(doc_id))
            if doc is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            doc.update(copy.deepcopy(changes))
            doc["id"] = str(doc_id)
            return copy.deepcopy(doc)

    def replace(self, collection: str, doc_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            items = self._collection(collection)
            if str(doc_id) not in items:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            doc = copy.deepcopy(document)
            doc["id"] = str(doc_id)
            items[str(doc_id)] = doc
            return copy.deepcopy(doc)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            if self._collection(collection).pop(str(doc_id), None) is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")
