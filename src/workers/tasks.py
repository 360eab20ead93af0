import logging

from celery import Task
from sqlalchemy.orm import Session

from models.database import SessionLocal
from services.product_dedup import find_duplicates
from services.review_refresh import ReviewRefreshScheduler
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    _db: Session | None = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        if self._db is not None:
            self._db.close()
            self._db = None


@celery_app.task(base=DatabaseTask, bind=True)
def refresh_stale_reviews(self: DatabaseTask) -> dict:
    logger.info("Starting scheduled review cache refresh")
    result = ReviewRefreshScheduler().sweep(self.db)
    return {
        "refreshed": result.refreshed,
        "errored": result.errored,
        "total": result.total,
    }


@celery_app.task(base=DatabaseTask, bind=True)
def report_duplicate_products(self: DatabaseTask, threshold: float | None = None) -> list[dict]:
    candidates = find_duplicates(self.db, threshold)
    for c in candidates:
        logger.info(
            f"Possible duplicate in brand {c.brand_id}: products {c.product_id_a} and "
            f"{c.product_id_b} ({c.similarity:.1%})"
        )
    return [
        {
            "product_id_a": c.product_id_a,
            "product_id_b": c.product_id_b,
            "brand_id": c.brand_id,
            "similarity": c.similarity,
        }
        for c in candidates
    ]
