"""
Report protected records missing their ownership fields.

Usage:
    python scripts/audit_integrity.py [--collection NAME]
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import setup_logging
from database import get_db_context, init_db, RecordStore
from access import audit_collection, run_full_audit


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Audit protected collections for missing ownership fields")
    parser.add_argument("--collection", help="Audit a single collection")
    args = parser.parse_args(argv)

    setup_logging()
    init_db()
    with get_db_context() as db:
        store = RecordStore(db)
        if args.collection:
            results = [audit_collection(store, args.collection)]
        else:
            results = run_full_audit(store)

    invalid = 0
    for result in results:
        invalid += result.invalid_records
        print(
            f"{result.collection}: {result.invalid_records}/{result.total_records} invalid "
            f"(client missing {result.missing_client_id}, trainer missing {result.missing_trainer_id}, "
            f"both missing {result.missing_both}, {result.percentage_affected}% affected)"
        )
        if result.sample_ids:
            print(f"  sample ids: {', '.join(result.sample_ids)}")
    return 1 if invalid else 0


if __name__ == "__main__":
    sys.exit(main())
