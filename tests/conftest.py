"""
Shared fixtures: a fresh in-memory SQLite database per test.
"""
import os
import sys

# Must be set before config.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from sqlalchemy.orm import sessionmaker

from database import init_db, make_engine, RecordStore, StoreError
from access import (
    AuthContext,
    ProtectedCollection,
    RelationshipDirectory,
    Role,
    RoleDirectory,
    SecureDataAccess,
)

WORKOUTS = ProtectedCollection.CLIENT_ASSIGNED_WORKOUTS.value

ADMIN = AuthContext(member_id="admin-1", role=Role.ADMIN)
TRAINER_1 = AuthContext(member_id="t1", role=Role.TRAINER)
TRAINER_2 = AuthContext(member_id="t2", role=Role.TRAINER)
CLIENT_1 = AuthContext(member_id="c1", role=Role.CLIENT)
CLIENT_2 = AuthContext(member_id="c2", role=Role.CLIENT)


class LeakyStore(RecordStore):
    """A store that ignores filters, returning every row of a collection."""

    def get_all(self, collection, filters=None, limit=None, skip=None):
        return super().get_all(collection, limit=limit, skip=skip)


class FailingStore(RecordStore):
    """A store whose reads always fail."""

    def get_all(self, collection, filters=None, limit=None, skip=None):
        raise StoreError("store unavailable", collection)

    def get_by_id(self, collection, item_id):
        raise StoreError("store unavailable", collection)


@pytest.fixture
def engine():
    """In-memory database with the schema created."""
    eng = make_engine("sqlite://")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def roles(store):
    return RoleDirectory(store)


@pytest.fixture
def relationships(store):
    return RelationshipDirectory(store)


@pytest.fixture
def gateway(store):
    return SecureDataAccess(store)


@pytest.fixture
def seeded(store, roles, relationships):
    """
    admin-1 (admin), t1 and t2 (trainers), c1 and c2 (clients).

    t1 is assigned to c1, t2 to c2. c1 has two workouts from t1, c2 one
    workout from t2.
    """
    roles.set_role("admin-1", Role.ADMIN)
    roles.set_role("t1", Role.TRAINER)
    roles.set_role("t2", Role.TRAINER)
    roles.set_default_role("c1")
    roles.set_default_role("c2")

    relationships.assign_client_to_trainer("c1", "t1")
    relationships.assign_client_to_trainer("c2", "t2")

    workouts = {
        "c1_week1": store.insert(WORKOUTS, {"clientId": "c1", "trainerId": "t1", "weekNumber": 1}),
        "c1_week2": store.insert(WORKOUTS, {"clientId": "c1", "trainerId": "t1", "weekNumber": 2}),
        "c2_week1": store.insert(WORKOUTS, {"clientId": "c2", "trainerId": "t2", "weekNumber": 1}),
    }
    return workouts
