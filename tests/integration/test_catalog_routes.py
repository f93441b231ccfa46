"""Integration tests for product and feedback API endpoints."""

from fastapi.testclient import TestClient

FEEDBACK = {
    "id": "f-1",
    "name": "Asha",
    "email": "asha@example.com",
    "rating": 5,
    "message": "Lovely juice!",
    "created_at": "2026-10-01T10:00:00+00:00",
}


class TestProducts:
    """Tests for /api/v1/products endpoints."""

    def test_list_products(self, client: TestClient, supabase_stub) -> None:
        """Test the public menu."""
        supabase_stub.respond(
            "products",
            "select",
            [{"id": "p-orange", "name": "Orange Juice", "price": "99.50", "category": "juices", "popular": True}],
        )

        response = client.get("/api/v1/products?popular=true")

        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["price"] == 99.5
        assert item["popular"] is True

    def test_unknown_product_returns_404(self, client: TestClient) -> None:
        """Test NotFoundError mapping."""
        response = client.get("/api/v1/products/p-none")

        assert response.status_code == 404


class TestFeedbacks:
    """Tests for /api/v1/feedbacks endpoints."""

    def test_anyone_can_submit(self, client: TestClient, supabase_stub) -> None:
        """Test public feedback submission."""
        supabase_stub.respond("feedbacks", "insert", [FEEDBACK])

        response = client.post(
            "/api/v1/feedbacks",
            json={"name": "Asha", "email": "asha@example.com", "rating": 5, "message": "Lovely juice!"},
        )

        assert response.status_code == 201
        assert response.json()["rating"] == 5

    def test_rating_out_of_range_returns_422(self, client: TestClient) -> None:
        """Test rating validation."""
        response = client.post("/api/v1/feedbacks", json={"name": "Asha", "rating": 6, "message": "Wow"})

        assert response.status_code == 422

    def test_admin_lists_with_stats(self, client: TestClient, supabase_stub, admin_headers: dict) -> None:
        """Test the admin listing."""
        supabase_stub.respond("feedbacks", "select", [FEEDBACK, {**FEEDBACK, "id": "f-2", "rating": 4}])

        response = client.get("/api/v1/feedbacks", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["average_rating"] == 4.5
        assert data["rating_counts"]["5"] == 1

    def test_customers_cannot_list(self, client: TestClient, customer_headers: dict) -> None:
        """Test admin-only listing."""
        response = client.get("/api/v1/feedbacks", headers=customer_headers)

        assert response.status_code == 403
