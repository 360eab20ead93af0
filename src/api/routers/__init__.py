"""API routers."""

from api.routers import cron, duplicates, reviews

__all__ = ["cron", "duplicates", "reviews"]
