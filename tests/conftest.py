"""Test fixtures for service and API tests."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncGenerator
import gc
import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def ensure_src_on_path() -> None:
    root = Path(__file__).resolve().parent.parent
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


ensure_src_on_path()

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("SERPER_API_KEY", "test-key")

from api.routers import cron, duplicates, reviews
from models import Base, Brand, Product, get_db
from models.sqlite_config import register_sqlite_pragmas
from services.serper_search import SearchResult

NOW = datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    register_sqlite_pragmas(engine)

    Base.metadata.create_all(bind=engine)
    yield engine
    gc.collect()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_brand(db_session: Session):
    def _make(name: str = "Nike", slug: str | None = None) -> Brand:
        brand = Brand(name=name, slug=slug or name.lower().replace(" ", "-"))
        db_session.add(brand)
        db_session.commit()
        return brand

    return _make


@pytest.fixture
def make_product(db_session: Session):
    def _make(brand: Brand, name: str, url: str | None = None, age_days: int = 0) -> Product:
        product = Product(
            brand_id=brand.id,
            name=name,
            url=url,
            created_at=NOW - timedelta(days=age_days),
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def make_result():
    def _make(n: int, host: str = "reddit.com") -> SearchResult:
        return SearchResult(
            title=f"Review {n}",
            snippet=f"Runs small, size up ({n})",
            url=f"https://www.{host}/r/fashion/{n}",
            source=host,
        )

    return _make


@pytest.fixture(scope="function")
def test_app():
    @asynccontextmanager
    async def test_lifespan(app: FastAPI) -> AsyncGenerator:
        yield

    app = FastAPI(
        title="FitLens Test",
        description="External review caching and product deduplication",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.include_router(reviews.router, prefix="/api/v1/products", tags=["reviews"])
    app.include_router(duplicates.router, prefix="/api/v1/products", tags=["duplicates"])
    app.include_router(cron.router, prefix="/api/v1/cron", tags=["cron"])

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


@pytest.fixture(scope="function")
def client(db_session: Session, test_app: FastAPI):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    test_app.dependency_overrides[get_db] = override_get_db
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()
