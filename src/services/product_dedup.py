import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import settings
from models import Product
from services.similarity import similarity
from services.text_normalization import normalize_name, normalize_url

logger = logging.getLogger(__name__)


@dataclass
class DuplicateCandidatePair:
    product_id_a: int
    product_id_b: int
    brand_id: int
    similarity: float


def _threshold(threshold: Optional[float]) -> float:
    if threshold is not None:
        return threshold
    return settings.duplicate_similarity_threshold


def comparison_key(product: Product) -> str:
    return product.normalized_name or normalize_name(product.name)


def _group_by_brand(products: Sequence[Product]) -> Dict[int, List[Product]]:
    groups: Dict[int, List[Product]] = defaultdict(list)
    for product in products:
        groups[product.brand_id].append(product)
    return groups


def find_duplicate_candidates(
    products: Sequence[Product], threshold: Optional[float] = None
) -> List[DuplicateCandidatePair]:
    """Every same-brand pair whose normalized names score at or above the threshold."""
    threshold = _threshold(threshold)
    candidates: List[DuplicateCandidatePair] = []

    for brand_id, brand_products in _group_by_brand(products).items():
        if len(brand_products) < 2:
            continue
        keys = [comparison_key(p) for p in brand_products]

        for i in range(len(brand_products)):
            for j in range(i + 1, len(brand_products)):
                score = similarity(keys[i], keys[j])
                if score >= threshold:
                    candidates.append(DuplicateCandidatePair(
                        product_id_a=brand_products[i].id,
                        product_id_b=brand_products[j].id,
                        brand_id=brand_id,
                        similarity=score,
                    ))

    return candidates


def load_catalog(db: Session) -> List[Product]:
    return list(
        db.execute(select(Product).order_by(Product.brand_id, Product.created_at, Product.id)).scalars()
    )


def find_duplicates(db: Session, threshold: Optional[float] = None) -> List[DuplicateCandidatePair]:
    products = load_catalog(db)
    candidates = find_duplicate_candidates(products, threshold)
    logger.info(f"Checked {len(products)} products, found {len(candidates)} duplicate pairs")
    return candidates


def _is_duplicate(seed: Product, other: Product, threshold: float) -> bool:
    seed_url = normalize_url(seed.url)
    if seed_url and seed_url == normalize_url(other.url):
        return True
    return similarity(comparison_key(seed), comparison_key(other)) >= threshold


def group_duplicates(
    products: Sequence[Product], threshold: Optional[float] = None
) -> List[List[Product]]:
    """Cluster same-brand duplicates around a seed product, oldest first.

    A product joins the first seed it matches by normalized URL or by name
    similarity; matching is against the seed only, not transitively.
    """
    threshold = _threshold(threshold)
    groups: List[List[Product]] = []

    for brand_products in _group_by_brand(products).values():
        processed: set = set()
        for i, seed in enumerate(brand_products):
            if seed.id in processed:
                continue
            processed.add(seed.id)
            group = [seed]
            for other in brand_products[i + 1:]:
                if other.id in processed:
                    continue
                if _is_duplicate(seed, other, threshold):
                    group.append(other)
                    processed.add(other.id)
            if len(group) > 1:
                group.sort(key=lambda p: (p.created_at, p.id))
                groups.append(group)

    return groups


def plan_keep_oldest(group: Sequence[Product]) -> List[Tuple[int, int]]:
    """(keep_id, delete_id) pairs that fold a duplicate group into its oldest product."""
    if len(group) < 2:
        return []
    ordered = sorted(group, key=lambda p: (p.created_at, p.id))
    keep = ordered[0]
    return [(keep.id, duplicate.id) for duplicate in ordered[1:]]


def find_existing_product(
    db: Session, brand_id: int, name: str, threshold: Optional[float] = None
) -> Optional[Product]:
    threshold = _threshold(threshold)
    key = normalize_name(name)

    exact = db.execute(
        select(Product)
        .where(Product.brand_id == brand_id, Product.normalized_name == key)
        .order_by(Product.created_at, Product.id)
        .limit(1)
    ).scalar_one_or_none()
    if exact is not None:
        return exact

    best: Optional[Product] = None
    best_score = 0.0
    for product in db.execute(select(Product).where(Product.brand_id == brand_id)).scalars():
        score = similarity(key, comparison_key(product))
        if score > best_score:
            best, best_score = product, score

    if best is not None and best_score >= threshold:
        logger.info(f"Fuzzy product match for '{name}': {best.name} (id {best.id}, {best_score:.2f})")
        return best
    return None


def get_or_create_product(
    db: Session, brand_id: int, name: str, url: Optional[str] = None
) -> Tuple[Product, bool]:
    existing = find_existing_product(db, brand_id, name)
    if existing is not None:
        return existing, False

    product = Product(brand_id=brand_id, name=name, url=url)
    db.add(product)
    db.commit()
    logger.info(f"Created product '{name}' (id {product.id}) for brand {brand_id}")
    return product, True
