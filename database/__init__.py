"""Database module."""
from .models import Base, Record, SYSTEM_FIELDS, new_record_id
from .connection import engine, SessionLocal, get_db, get_db_context, init_db, make_engine
from .store import RecordStore, StoreError, RecordNotFoundError

__all__ = [
    "Base",
    "Record",
    "SYSTEM_FIELDS",
    "new_record_id",
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "init_db",
    "make_engine",
    "RecordStore",
    "StoreError",
    "RecordNotFoundError",
]
