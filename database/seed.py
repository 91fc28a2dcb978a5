"""
Seed data script for the Fitness Coaching access service.
Creates sample members, assignments and protected records for testing
and demonstration.
"""
from datetime import date, timedelta

from access import (
    AuthContext,
    ProtectedCollection,
    RelationshipDirectory,
    Role,
    RoleDirectory,
    SecureDataAccess,
)
from database import get_db_context, init_db, Record, RecordStore


ADMIN_ID = "admin-1"
TRAINERS = ["trainer-1", "trainer-2"]
CLIENTS = {
    "client-1": "trainer-1",
    "client-2": "trainer-1",
    "client-3": "trainer-2",
}


def seed_database():
    """Populate database with sample data."""

    with get_db_context() as db:
        # Clear existing data
        db.query(Record).delete()
        db.commit()

        store = RecordStore(db)
        roles = RoleDirectory(store)
        relationships = RelationshipDirectory(store)
        gateway = SecureDataAccess(store, relationships)

        # Roles
        roles.set_role(ADMIN_ID, Role.ADMIN)
        for trainer_id in TRAINERS:
            roles.set_role(trainer_id, Role.TRAINER)
        for client_id in CLIENTS:
            roles.set_default_role(client_id)

        # Assignments
        for client_id, trainer_id in CLIENTS.items():
            relationships.assign_client_to_trainer(client_id, trainer_id, notes="Seed assignment")

        # Workouts and check-ins, written by each trainer through the gateway
        week_start = date.today() - timedelta(days=date.today().weekday())
        workouts = 0
        checkins = 0
        for client_id, trainer_id in CLIENTS.items():
            trainer = AuthContext(member_id=trainer_id, role=Role.TRAINER)
            client = AuthContext(member_id=client_id, role=Role.CLIENT)
            for week in range(1, 4):
                gateway.create_scoped(
                    ProtectedCollection.CLIENT_ASSIGNED_WORKOUTS,
                    {
                        "clientId": client_id,
                        "weekNumber": week,
                        "exerciseName": "Back Squat",
                        "sets": 4,
                        "reps": 8,
                    },
                    trainer,
                )
                workouts += 1

                gateway.create_scoped(
                    ProtectedCollection.WEEKLY_CHECKINS,
                    {
                        "trainerId": trainer_id,
                        "weekNumber": week,
                        "weekStartDate": (week_start - timedelta(weeks=3 - week)).isoformat(),
                        "energyLevel": 7,
                    },
                    client,
                )
                checkins += 1

        print("Database seeded successfully!")
        print(f"Created:")
        print(f"  - 1 admin")
        print(f"  - {len(TRAINERS)} trainers")
        print(f"  - {len(CLIENTS)} clients")
        print(f"  - {workouts} workouts")
        print(f"  - {checkins} check-ins")

        # Print some IDs for reference
        print("\nReference IDs:")
        print(f"  Admin: {ADMIN_ID}")
        print(f"  Assignments: {sorted(CLIENTS.items())}")


if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    print("Seeding database...")
    seed_database()
