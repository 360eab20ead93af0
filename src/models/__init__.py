from models.database import Base, SessionLocal, get_db, init_db
from models.domain import (
    Brand,
    CachedReviewSnippet,
    Product,
    ReviewCacheEntry,
    UserRecommendation,
    utc_now,
)

__all__ = [
    "Base",
    "SessionLocal",
    "get_db",
    "init_db",
    "Brand",
    "Product",
    "UserRecommendation",
    "ReviewCacheEntry",
    "CachedReviewSnippet",
    "utc_now",
]
