"""
Database models for the Fitness Coaching access service.

The platform's record store is a schemaless document store: every
collection (workouts, check-ins, role assignments, ...) lives in the
single `records` table, keyed by collection name, with the document
body in a JSON column.
"""
from datetime import datetime, timezone
from uuid import uuid4
from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Store-managed keys that never live inside the JSON body
SYSTEM_FIELDS = ("_id", "_createdDate", "_updatedDate")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    """Generate a new record id."""
    return str(uuid4())


class Record(Base):
    """
    Records table - one row per document of any collection.
    
    Attributes:
        pk: Insertion sequence, used for stable ordering
        id: Unique identifier (exposed as `_id`)
        collection: Collection name (e.g. "clientassignedworkouts")
        unique_key: Optional dedupe key; at most one row per
            (collection, unique_key) can exist
        data: Document body (domain fields such as clientId, trainerId)
        created_at: Creation timestamp (exposed as `_createdDate`)
        updated_at: Last update timestamp (exposed as `_updatedDate`)
    """
    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint("collection", "unique_key", name="uq_records_collection_unique_key"),
    )
    
    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True, default=new_record_id)
    collection = Column(String(100), nullable=False, index=True)
    unique_key = Column(String(255), nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    
    def __repr__(self):
        return f"<Record(id={self.id}, collection='{self.collection}')>"
    
    def to_dict(self):
        """Convert the row to the item shape callers see."""
        item = {"_id": self.id}
        item.update(self.data or {})
        item["_createdDate"] = self.created_at.isoformat() if self.created_at else None
        item["_updatedDate"] = self.updated_at.isoformat() if self.updated_at else None
        return item
