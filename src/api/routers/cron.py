"""Periodic-trigger endpoint for the weekly review cache refresh."""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from config import settings
from models import get_db
from models.schemas import RefreshSweepResponse
from services.review_refresh import ReviewRefreshScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


def get_refresh_scheduler() -> ReviewRefreshScheduler:
    return ReviewRefreshScheduler()


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    if not settings.cron_secret:
        return
    expected = f"Bearer {settings.cron_secret}"
    if not authorization or not secrets.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


# Plain def: the sweep blocks on rate-limit sleeps and runs in the threadpool.
@router.api_route(
    "/refresh-reviews",
    methods=["GET", "POST"],
    response_model=RefreshSweepResponse,
    dependencies=[Depends(verify_cron_secret)],
)
def refresh_reviews(
    db: Session = Depends(get_db),
    scheduler: ReviewRefreshScheduler = Depends(get_refresh_scheduler),
) -> RefreshSweepResponse:
    logger.info("Cron: starting review cache refresh")
    result = scheduler.sweep(db)

    message = "Review cache refresh complete" if result.total else "No products need refresh"
    return RefreshSweepResponse(
        message=message,
        products_refreshed=result.refreshed,
        errors=result.errored,
        total_products=result.total,
    )
