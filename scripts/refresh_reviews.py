"""Run one review cache refresh sweep outside of Celery beat."""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from models import SessionLocal
from services.review_refresh import ReviewRefreshScheduler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Refresh expired review caches")
    parser.add_argument("--product-id", type=int, default=None, help="Refresh a single product instead of a sweep")
    parser.add_argument("--dry-run", action="store_true", default=False, help="Only list due products")
    args = parser.parse_args()

    scheduler = ReviewRefreshScheduler()
    db = SessionLocal()
    try:
        if args.dry_run:
            due = scheduler.list_due_products(db)
            print(f"{len(due)} products due: {due}")
            return
        if args.product_id is not None:
            outcome = scheduler.refresh_product(db, args.product_id)
            print(f"Product {args.product_id}: {outcome.value}")
            return
        result = scheduler.sweep(db)
        print(f"✅ {result.refreshed} refreshed, {result.errored} errors, {result.total} total")
    finally:
        db.close()


if __name__ == "__main__":
    main()
