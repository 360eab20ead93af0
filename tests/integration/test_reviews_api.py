from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from models import utc_now
from services.review_cache import get_entry, store_reviews

STORE_PAYLOAD = {
    "search_query": "Nike Air Max 270 reviews",
    "results": [
        {
            "title": "Air Max 270 sizing",
            "snippet": "Go half a size up.",
            "url": "https://www.reddit.com/r/Sneakers/comments/1",
        },
        {
            "title": "Air Max 270 review",
            "snippet": "Narrow toe box.",
            "url": "https://runrepeat.com/nike-air-max-270",
            "source": "RunRepeat",
        },
        {
            "snippet": "Runs small.",
            "url": "https://www.reddit.com/r/Sneakers/comments/1",
        },
    ],
}


class TestReviewsEndpoints:

    def test_store_then_read(self, client: TestClient, make_brand, make_product):
        product = make_product(make_brand(), "Air Max 270")

        response = client.post(f"/api/v1/products/{product.id}/reviews", json=STORE_PAYLOAD)

        assert response.status_code == 201
        data = response.json()
        assert data["product_id"] == product.id
        assert data["search_query"] == "Nike Air Max 270 reviews"
        assert data["total_results"] == 3

        response = client.get(f"/api/v1/products/{product.id}/reviews")

        assert response.status_code == 200
        data = response.json()
        assert data["product_id"] == product.id
        assert data["cache"]["total_results"] == 3
        assert len(data["reviews"]) == 2
        sources = {r["source_url"]: r["source"] for r in data["reviews"]}
        assert sources == {
            "https://www.reddit.com/r/Sneakers/comments/1": "reddit.com",
            "https://runrepeat.com/nike-air-max-270": "RunRepeat",
        }

    def test_storing_twice_is_idempotent(self, client: TestClient, make_brand, make_product):
        product = make_product(make_brand(), "Air Max 270")

        client.post(f"/api/v1/products/{product.id}/reviews", json=STORE_PAYLOAD)
        client.post(f"/api/v1/products/{product.id}/reviews", json=STORE_PAYLOAD)

        data = client.get(f"/api/v1/products/{product.id}/reviews").json()
        assert len(data["reviews"]) == 2

    def test_never_cached_product_is_404(self, client: TestClient, make_brand, make_product):
        product = make_product(make_brand(), "Air Max 270")

        response = client.get(f"/api/v1/products/{product.id}/reviews")

        assert response.status_code == 404
        assert response.json()["detail"] == "No fresh cached reviews"

    def test_expired_cache_is_404(self, client: TestClient, db_session: Session, make_brand, make_product, make_result):
        product = make_product(make_brand(), "Air Max 270")
        store_reviews(db_session, product.id, "q", [make_result(1)], now=utc_now() - timedelta(days=8))

        response = client.get(f"/api/v1/products/{product.id}/reviews")

        assert response.status_code == 404

    def test_store_for_unknown_product(self, client: TestClient):
        response = client.post("/api/v1/products/999/reviews", json=STORE_PAYLOAD)

        assert response.status_code == 404
        assert response.json()["detail"] == "Product 999 not found"

    def test_store_with_malformed_url(self, client: TestClient, make_brand, make_product):
        product = make_product(make_brand(), "Air Max 270")
        payload = {"search_query": "q", "results": [{"snippet": "Runs large.", "url": "http://[broken"}]}

        response = client.post(f"/api/v1/products/{product.id}/reviews", json=payload)

        assert response.status_code == 201
        reviews = client.get(f"/api/v1/products/{product.id}/reviews").json()["reviews"]
        assert [r["source"] for r in reviews] == ["unknown"]

    def test_store_requires_query(self, client: TestClient, make_brand, make_product):
        product = make_product(make_brand(), "Air Max 270")

        response = client.post(f"/api/v1/products/{product.id}/reviews", json={"search_query": "", "results": []})

        assert response.status_code == 422

    def test_clear_cache(self, client: TestClient, db_session: Session, make_brand, make_product):
        product = make_product(make_brand(), "Air Max 270")
        client.post(f"/api/v1/products/{product.id}/reviews", json=STORE_PAYLOAD)

        response = client.delete(f"/api/v1/products/{product.id}/reviews")

        assert response.status_code == 200
        assert response.json() == {"product_id": product.id, "cleared": True}
        assert get_entry(db_session, product.id) is None
        assert client.get(f"/api/v1/products/{product.id}/reviews").status_code == 404


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
