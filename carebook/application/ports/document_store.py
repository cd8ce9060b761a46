from typing import Any, Dict, List, Optional, Protocol


class DocumentStore(Protocol):
    """Collection-per-resource document store (json-server style).

    ``list`` filters by field equality. ``get``, ``patch``, ``replace`` and
    ``delete`` raise ``NotFoundError`` for unknown ids; transport failures
    surface as ``TransportError``.
    """

    def list(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        ...

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        ...

    def create(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def patch(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def replace(self, collection: str, doc_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...
