import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from models import init_db
from models.migrations import upgrade_db

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the FitLens database schema")
    parser.add_argument(
        "--migrate",
        action="store_true",
        default=False,
        help="Apply Alembic migrations instead of create_all",
    )
    args = parser.parse_args()

    if args.migrate:
        print("Applying migrations...")
        upgrade_db()
    else:
        print("Creating database tables...")
        init_db()
    print("✅ Database schema ready!")
