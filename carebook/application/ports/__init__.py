from .document_store import DocumentStore
from .audit_logger import AuditLogger

__all__ = ["DocumentStore", "AuditLogger"]
