"""
Generic record store.

A thin document-store API (get_all / get_by_id / insert / update / remove
by collection name) over the `records` table. The store knows nothing
about roles or ownership; scoping is the access layer's job.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Record, SYSTEM_FIELDS, new_record_id

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing store fails (unavailable, driver error)."""

    def __init__(self, message: str, collection: str = None):
        self.message = message
        self.collection = collection
        super().__init__(self.message)


class RecordNotFoundError(Exception):
    """Raised when a record does not exist (or is not visible to the caller)."""

    def __init__(self, collection: str, item_id: str):
        self.collection = collection
        self.item_id = item_id
        super().__init__(f"Record {item_id} not found in {collection}")


def _body(data: Dict[str, Any]) -> Dict[str, Any]:
    """Strip store-managed keys from a document body."""
    return {k: v for k, v in data.items() if k not in SYSTEM_FIELDS}


class RecordStore:
    """
    Document store over a SQLAlchemy session.

    Every write commits immediately, so a caller always reads its own
    writes on the same session.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self, collection: str, filters: Optional[Dict[str, str]] = None):
        query = self.db.query(Record).filter(Record.collection == collection)
        for field, value in (filters or {}).items():
            query = query.filter(Record.data[field].as_string() == str(value))
        return query

    def get_all(
        self,
        collection: str,
        filters: Optional[Dict[str, str]] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get items of a collection in insertion order.

        Args:
            collection: Collection name
            filters: Equality predicates on top-level string fields
            limit: Maximum number of items (optional)
            skip: Number of items to skip (optional)

        Returns:
            List of item dicts

        Raises:
            StoreError: If the backing store fails
        """
        try:
            query = self._query(collection, filters).order_by(Record.pk)
            if skip:
                query = query.offset(skip)
            if limit:
                query = query.limit(limit)
            return [row.to_dict() for row in query.all()]
        except SQLAlchemyError as e:
            logger.error("Store read failed for %s: %s", collection, e)
            raise StoreError(f"Failed to read {collection}", collection) from e

    def count(self, collection: str, filters: Optional[Dict[str, str]] = None) -> int:
        """Count items of a collection."""
        try:
            return self._query(collection, filters).count()
        except SQLAlchemyError as e:
            logger.error("Store count failed for %s: %s", collection, e)
            raise StoreError(f"Failed to count {collection}", collection) from e

    def get_by_id(self, collection: str, item_id: str) -> Optional[Dict[str, Any]]:
        """Get a single item, or None if it does not exist in the collection."""
        try:
            row = self._get_row(collection, item_id)
            return row.to_dict() if row else None
        except SQLAlchemyError as e:
            logger.error("Store read failed for %s/%s: %s", collection, item_id, e)
            raise StoreError(f"Failed to read {collection}", collection) from e

    def _get_row(self, collection: str, item_id: str) -> Optional[Record]:
        return (
            self.db.query(Record)
            .filter(Record.collection == collection)
            .filter(Record.id == item_id)
            .first()
        )

    def insert(
        self,
        collection: str,
        data: Dict[str, Any],
        unique_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Insert a new item.

        A caller-supplied `_id` is kept; otherwise one is generated.

        Raises:
            StoreError: If the write fails (including a unique_key clash)
        """
        row = Record(
            id=data.get("_id") or new_record_id(),
            collection=collection,
            unique_key=unique_key,
            data=_body(data),
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store insert failed for %s: %s", collection, e)
            raise StoreError(f"Failed to insert into {collection}", collection) from e
        return row.to_dict()

    def insert_if_absent(
        self,
        collection: str,
        unique_key: str,
        data: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Conditional insert: create the item unless one with the same
        unique_key already exists in the collection.

        Returns:
            (item, created) - the stored item (new or existing) and whether
            this call created it
        """
        try:
            existing = (
                self.db.query(Record)
                .filter(Record.collection == collection)
                .filter(Record.unique_key == unique_key)
                .first()
            )
            if existing:
                return existing.to_dict(), False

            row = Record(
                id=data.get("_id") or new_record_id(),
                collection=collection,
                unique_key=unique_key,
                data=_body(data),
            )
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                # Lost the race: another writer created it first
                self.db.rollback()
                winner = (
                    self.db.query(Record)
                    .filter(Record.collection == collection)
                    .filter(Record.unique_key == unique_key)
                    .one()
                )
                return winner.to_dict(), False
            self.db.refresh(row)
            return row.to_dict(), True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store conditional insert failed for %s: %s", collection, e)
            raise StoreError(f"Failed to insert into {collection}", collection) from e

    def update(
        self,
        collection: str,
        item_id: str,
        changes: Dict[str, Any],
        release_unique_key: bool = False
    ) -> Dict[str, Any]:
        """
        Merge changes into an existing item.

        With release_unique_key the item gives up its unique_key, so a new
        item may be created under the same key.

        Raises:
            RecordNotFoundError: If the item does not exist
            StoreError: If the write fails
        """
        try:
            row = self._get_row(collection, item_id)
            if not row:
                raise RecordNotFoundError(collection, item_id)
            merged = dict(row.data or {})
            merged.update(_body(changes))
            # Reassign so the JSON column is flagged dirty
            row.data = merged
            if release_unique_key:
                row.unique_key = None
            self.db.commit()
            self.db.refresh(row)
            return row.to_dict()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store update failed for %s/%s: %s", collection, item_id, e)
            raise StoreError(f"Failed to update {collection}", collection) from e

    def remove(self, collection: str, item_id: str) -> None:
        """
        Physically delete an item.

        Raises:
            RecordNotFoundError: If the item does not exist
        """
        try:
            row = self._get_row(collection, item_id)
            if not row:
                raise RecordNotFoundError(collection, item_id)
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store delete failed for %s/%s: %s", collection, item_id, e)
            raise StoreError(f"Failed to delete from {collection}", collection) from e
