"""List probable duplicate products, grouped by brand."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from models import Product, SessionLocal
from services.product_dedup import DuplicateCandidatePair, find_duplicates

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEPARATOR = "━" * 48


def format_pair(pair: DuplicateCandidatePair, products: Dict[int, Product]) -> List[str]:
    lines = [
        SEPARATOR,
        f"Brand ID: {pair.brand_id}",
        f"Similarity: {pair.similarity * 100:.1f}%",
        "",
    ]
    for product_id in (pair.product_id_a, pair.product_id_b):
        product = products.get(product_id)
        if product is None:
            lines.append(f"  Product ID: {product_id} (missing)")
            continue
        lines.extend([
            f"  Product ID: {product.id}",
            f"  Name: {product.name}",
            f"  Normalized: {product.normalized_name}",
            f"  URL: {product.url or '-'}",
            f"  Created: {product.created_at:%Y-%m-%d}",
            "",
        ])
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(description="Find duplicate products in the FitLens database")
    parser.add_argument("--threshold", type=float, default=None, help="Minimum name similarity (default 0.85)")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        pairs = find_duplicates(db, args.threshold)
        if not pairs:
            print("✅ No duplicate products found!")
            return

        ids = {pid for p in pairs for pid in (p.product_id_a, p.product_id_b)}
        products = {p.id: p for p in db.query(Product).filter(Product.id.in_(ids)).all()}

        print(f"⚠  Found {len(pairs)} potential duplicate pairs:\n")
        for pair in pairs:
            print("\n".join(format_pair(pair, products)))
        print(SEPARATOR)
        print("\nMerge with: python scripts/merge_duplicate_products.py --keep <id> --delete <id>")
    finally:
        db.close()


if __name__ == "__main__":
    main()
