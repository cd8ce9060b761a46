import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from .models import Appointment, Notification, Prescription, Review
from .ports.document_store import DocumentStore
from ..exceptions import NotFoundError, TransportError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityCollection(Generic[T]):
    """Typed CRUD wrapper around one collection of the document store."""

    def __init__(self, store: DocumentStore, name: str, from_document: Callable[[Dict[str, Any]], T], label: str):
        self.store = store
        self.name = name
        self._from_document = from_document
        self.label = label

    def _decode(self, doc: Dict[str, Any]) -> T:
        return self._from_document(doc)

    def _decode_one(self, doc: Dict[str, Any]) -> T:
        try:
            return self._decode(doc)
        except (KeyError, ValueError, TypeError, ValidationError) as e:
            logger.error(f"Malformed {self.label} document {doc.get('id')}: {e}")
            raise TransportError(f"Stored {self.label.lower()} {doc.get('id')} is malformed")

    def find(self, **filters) -> List[T]:
        """Return the entities matching every given field, skipping malformed documents."""
        query = {k: v for k, v in filters.items() if v is not None}
        result = []
        for doc in self.store.list(self.name, query or None):
            try:
                result.append(self._decode(doc))
            except (KeyError, ValueError, TypeError, ValidationError) as e:
                logger.warning(f"Skipping malformed {self.label} document {doc.get('id')}: {e}")
        return result

    def get(self, doc_id: str) -> T:
        if doc_id is None or str(doc_id).strip() == "":
            raise NotFoundError(f"{self.label} not found")
        try:
            return self._decode_one(self.store.get(self.name, str(doc_id)))
        except NotFoundError:
            raise NotFoundError(f"{self.label} not found")

    def get_or_none(self, doc_id: str) -> Optional[T]:
        try:
            return self.get(doc_id)
        except NotFoundError:
            return None

    def add(self, entity) -> T:
        doc = entity.to_document()
        doc.pop("id", None)
        return self._decode_one(self.store.create(self.name, doc))

    def update(self, doc_id: str, changes: Dict[str, Any]) -> T:
        try:
            return self._decode_one(self.store.patch(self.name, str(doc_id), changes))
        except NotFoundError:
            raise NotFoundError(f"{self.label} not found")

    def replace(self, doc_id: str, entity) -> T:
        doc = entity.to_document()
        doc["id"] = doc_id
        try:
            return self._decode_one(self.store.replace(self.name, str(doc_id), doc))
        except NotFoundError:
            raise NotFoundError(f"{self.label} not found")

    def remove(self, doc_id: str) -> None:
        try:
            self.store.delete(self.name, str(doc_id))
        except NotFoundError:
            raise NotFoundError(f"{self.label} not found")


@dataclass
class Collections:
    appointments: EntityCollection[Appointment]
    notifications: EntityCollection[Notification]
    prescriptions: EntityCollection[Prescription]
    reviews: EntityCollection[Review]

    @classmethod
    def over(cls, store: DocumentStore) -> "Collections":
        return cls(
            appointments=EntityCollection(store, "appointments", Appointment.from_document, "Appointment"),
            notifications=EntityCollection(store, "notifications", Notification.from_document, "Notification"),
            prescriptions=EntityCollection(store, "prescriptions", Prescription.from_document, "Prescription"),
            reviews=EntityCollection(store, "reviews", Review.from_document, "Review"),
        )
