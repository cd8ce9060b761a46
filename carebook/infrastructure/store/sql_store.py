import copy
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ...application.ports.document_store import DocumentStore
from ...db.models import StoredDocument, utcnow
from ...exceptions import NotFoundError, TransportError
from .memory_store import matches

logger = logging.getLogger(__name__)


class SqlDocumentStore(DocumentStore):
    """Keeps every collection in a single ``documents`` table with a JSON body."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _row(self, session: Session, collection: str, doc_id: str) -> StoredDocument:
        row = session.exec(
            select(StoredDocument)
            .where(StoredDocument.collection == collection)
            .where(StoredDocument.id == str(doc_id))
        ).first()
        if not row:
            raise NotFoundError(f"{collection}/{doc_id} not found")
        return row

    @staticmethod
    def _out(row: StoredDocument) -> Dict[str, Any]:
        doc = copy.deepcopy(row.body)
        doc["id"] = row.id
        return doc

    def _write(self, session: Session, row: StoredDocument) -> Dict[str, Any]:
        try:
            session.add(row)
            session.commit()
            session.refresh(row)
        except Exception as e:
            logger.error(f"Error writing {row.collection}/{row.id}: {e}")
            session.rollback()
            raise TransportError(f"Failed to write {row.collection} document")
        return self._out(row)

    def list(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(StoredDocument)
                .where(StoredDocument.collection == collection)
                .order_by(StoredDocument.created_at)
            ).all()
            docs = [self._out(r) for r in rows]
        return [d for d in docs if matches(d, filters)]

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        with Session(self.engine) as session:
            return self._out(self._row(session, collection, doc_id))

    def create(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        body = copy.deepcopy(document)
        doc_id = str(body.pop("id", None) or uuid.uuid4().hex)
        with Session(self.engine) as session:
            row = StoredDocument(id=doc_id, collection=collection, body=body)
            return self._write(session, row)

    def patch(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        with Session(self.engine) as session:
            row = self._row(session, collection, doc_id)
            body = copy.deepcopy(row.body)
            body.update(copy.deepcopy(changes))
            body.pop("id", None)
            # JSON columns only notice reassignment
            row.body = body
            row.updated_at = utcnow()
            return self._write(session, row)

    def replace(self, collection: str, doc_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        with Session(self.engine) as session:
            row = self._row(session, collection, doc_id)
            body = copy.deepcopy(document)
            body.pop("id", None)
            row.body = body
            row.updated_at = utcnow()
            return self._write(session, row)

    def delete(self, collection: str, doc_id: str) -> None:
        with Session(self.engine) as session:
            row = self._row(session, collection, doc_id)
            session.delete(row)
            session.commit()
