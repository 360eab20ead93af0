import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import cron, duplicates, reviews
from config import settings
from models import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    init_db()
    if not settings.serper_api_key:
        logger.warning("SERPER_API_KEY is not set; review refreshes will fail")
    yield

app = FastAPI(
    title=settings.app_name,
    description="External review caching and product deduplication",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reviews.router, prefix="/api/v1/products", tags=["reviews"])
app.include_router(duplicates.router, prefix="/api/v1/products", tags=["duplicates"])
app.include_router(cron.router, prefix="/api/v1/cron", tags=["cron"])


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
