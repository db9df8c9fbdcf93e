"""
Document model

One row per record in a named collection. Fields that the repository
queries or stamps live in their own columns; everything the editor owns
(translations, gallery, category, ...) is kept in the JSON ``data`` column.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, UniqueConstraint

from editorial.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    collection = Column(String(64), nullable=False, index=True)
    key = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    data = Column(JSON, nullable=False, default=dict)

    # Set while a two-phase rename is in flight: the key this document was moved from
    moved_from = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("collection", "key", name="uq_documents_collection_key"),
        UniqueConstraint("collection", "slug", name="uq_documents_collection_slug"),
        Index("idx_documents_moved_from", "collection", "moved_from"),
    )

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.key}>"
