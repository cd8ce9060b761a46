# carebook/db/models.py
from typing import Any, Dict
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredDocument(SQLModel, table=True):
    __tablename__ = "documents"
    id: str = Field(primary_key=True, max_length=64)
    collection: str = Field(index=True, max_length=64)
    body: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
