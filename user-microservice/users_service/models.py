"""SQLAlchemy ORM models backing the document store."""

from sqlalchemy import Column, String, JSON
from sqlalchemy.dialects.postgresql import JSONB
from .db import Base
from .schemas import MAX_ID_LENGTH


class Document(Base):
    """One JSON document, addressed by collection name and document id."""

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(MAX_ID_LENGTH), primary_key=True)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
