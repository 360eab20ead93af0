"""Merge duplicate products, either one pair at a time or every group keeping the oldest."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Tuple

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from sqlalchemy.orm import Session

from models import Product, SessionLocal
from services.errors import FitLensError
from services.product_dedup import group_duplicates, load_catalog, plan_keep_oldest
from services.product_merge import merge_products

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def describe(product: Product) -> str:
    return f"ID {product.id}: {product.name} ({product.url or '-'}, created {product.created_at:%Y-%m-%d %H:%M})"


def plan_auto_merges(db: Session, threshold: float | None = None) -> List[Tuple[int, int]]:
    plan: List[Tuple[int, int]] = []
    for group in group_duplicates(load_catalog(db), threshold):
        plan.extend(plan_keep_oldest(group))
    return plan


def apply_merges(db: Session, plan: List[Tuple[int, int]]) -> Tuple[int, int]:
    merged = 0
    failed = 0
    for keep_id, delete_id in plan:
        try:
            merge_products(db, keep_id, delete_id)
            merged += 1
        except FitLensError as e:
            logger.error(f"✗ Could not merge {delete_id} into {keep_id}: {e}")
            failed += 1
    return merged, failed


def _confirm(prompt: str) -> bool:
    try:
        return input(prompt).strip().lower() == "yes"
    except EOFError:
        print("\n⚠  No terminal input available. Use --yes flag to skip confirmation.")
        return False


def main() -> None:
    parser = argparse.ArgumentParser(description="Merge duplicate products in the FitLens database")
    parser.add_argument("--keep", type=int, help="Product ID to keep")
    parser.add_argument("--delete", type=int, help="Product ID to merge away and delete")
    parser.add_argument(
        "--auto",
        action="store_true",
        default=False,
        help="Merge every duplicate group into its oldest product",
    )
    parser.add_argument("--threshold", type=float, default=None, help="Name similarity for --auto")
    parser.add_argument("--yes", action="store_true", default=False, help="Skip confirmation prompt")
    args = parser.parse_args()

    if not args.auto and (args.keep is None or args.delete is None):
        parser.error("either --auto or both --keep and --delete are required")

    db = SessionLocal()
    try:
        if args.auto:
            plan = plan_auto_merges(db, args.threshold)
            if not plan:
                print("✅ No duplicate groups found")
                return
            for keep_id, delete_id in plan:
                print(f"  keep {keep_id} <- delete {delete_id}")
        else:
            keep = db.get(Product, args.keep)
            doomed = db.get(Product, args.delete)
            if keep is None or doomed is None:
                print("❌ Could not find both products")
                sys.exit(1)
            print(f"PRODUCT TO KEEP:   {describe(keep)}")
            print(f"PRODUCT TO DELETE: {describe(doomed)}")
            plan = [(args.keep, args.delete)]

        if not args.yes and not _confirm("\nAre you sure you want to proceed? (yes/no): "):
            print("Merge cancelled.")
            return

        merged, failed = apply_merges(db, plan)
        print(f"\n✅ {merged} merged, {failed} failed")
        if failed:
            sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
