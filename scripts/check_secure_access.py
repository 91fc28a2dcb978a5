"""
Flag direct record-store reads of protected collections.

Usage:
    python scripts/check_secure_access.py [PATH ...]

Exits with status 1 when violations are found.
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import setup_logging
from guardrails import SecureAccessRule

DEFAULT_PATHS = ["access", "api", "database", "main.py"]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("paths", nargs="*", default=DEFAULT_PATHS, help="Files or directories to scan")
    args = parser.parse_args(argv)

    setup_logging()
    violations = SecureAccessRule().check_paths(args.paths)
    if violations:
        print(f"{len(violations)} secure-access violation(s) found")
        return 1
    print("No secure-access violations found")
    return 0


if __name__ == "__main__":
    sys.exit(main())
