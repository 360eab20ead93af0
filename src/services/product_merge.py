"""
Fold a duplicate product into a surviving one.

References are repointed first and the duplicate row is deleted last, inside
one transaction. If anything fails before the commit the whole merge rolls
back and the duplicate stays in place with its references untouched. Which
product survives is the caller's decision.
"""

import logging
from typing import Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from models import CachedReviewSnippet, Product, ReviewCacheEntry, UserRecommendation
from models.db_retry import commit_with_retry
from services.errors import InvalidMergeError, MergeFailedError, ProductNotFoundError

logger = logging.getLogger(__name__)


def merge_products(db: Session, keep_id: int, delete_id: int) -> bool:
    _validate(db, keep_id, delete_id)
    logger.info(f"Merging products: keeping {keep_id}, deleting {delete_id}")

    try:
        repointed = _repoint_recommendations(db, keep_id, delete_id)
        moved, dropped = _move_review_cache(db, keep_id, delete_id)
        db.flush()

        remaining = count_references(db, delete_id)
        if remaining:
            raise MergeFailedError(
                f"{remaining} rows still reference product {delete_id}; delete aborted"
            )

        db.execute(delete(Product).where(Product.id == delete_id))
        commit_with_retry(db)
    except MergeFailedError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Merge of {delete_id} into {keep_id} failed, nothing changed: {e}")
        raise MergeFailedError(f"Merge of product {delete_id} into {keep_id} failed: {e}") from e

    logger.info(
        f"Merged product {delete_id} into {keep_id}: {repointed} recommendations repointed, "
        f"{moved} cached reviews moved, {dropped} duplicate cached reviews dropped"
    )
    return True


def _validate(db: Session, keep_id: int, delete_id: int) -> None:
    if keep_id == delete_id:
        raise InvalidMergeError("Product IDs must be different")
    for product_id in (keep_id, delete_id):
        if db.get(Product, product_id) is None:
            raise ProductNotFoundError(product_id)


def _repoint_recommendations(db: Session, keep_id: int, delete_id: int) -> int:
    result = db.execute(
        update(UserRecommendation)
        .where(UserRecommendation.product_id == delete_id)
        .values(product_id=keep_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _move_review_cache(db: Session, keep_id: int, delete_id: int) -> Tuple[int, int]:
    kept = aliased(CachedReviewSnippet)
    dropped = db.execute(
        delete(CachedReviewSnippet)
        .where(
            CachedReviewSnippet.product_id == delete_id,
            CachedReviewSnippet.source_url.in_(
                select(kept.source_url).where(
                    kept.product_id == keep_id, kept.source_url.is_not(None)
                )
            ),
        )
        .execution_options(synchronize_session=False)
    ).rowcount
    moved = db.execute(
        update(CachedReviewSnippet)
        .where(CachedReviewSnippet.product_id == delete_id)
        .values(product_id=keep_id)
        .execution_options(synchronize_session=False)
    ).rowcount

    keep_has_entry = db.execute(
        select(ReviewCacheEntry.id).where(ReviewCacheEntry.product_id == keep_id)
    ).first()
    if keep_has_entry:
        db.execute(
            delete(ReviewCacheEntry)
            .where(ReviewCacheEntry.product_id == delete_id)
            .execution_options(synchronize_session=False)
        )
    else:
        db.execute(
            update(ReviewCacheEntry)
            .where(ReviewCacheEntry.product_id == delete_id)
            .values(product_id=keep_id)
            .execution_options(synchronize_session=False)
        )

    return moved, dropped


def count_references(db: Session, product_id: int) -> int:
    total = 0
    for model in (UserRecommendation, CachedReviewSnippet, ReviewCacheEntry):
        total += db.execute(
            select(func.count()).select_from(model).where(model.product_id == product_id)
        ).scalar_one()
    return total
