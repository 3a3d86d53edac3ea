"""Integration tests for Discount API endpoints via TestClient."""

from datetime import UTC, datetime, timedelta

from checkout.promotion.discount import Discount
from protean import current_domain

NOW = datetime.now(UTC)


def _create_discount(client, **overrides):
    payload = {
        "code": "save10",
        "name": "Save 10%",
        "discount_type": "Percentage",
        "percentage_value": 10,
        "start_date": (NOW - timedelta(days=1)).isoformat(),
        "end_date": (NOW + timedelta(days=30)).isoformat(),
    }
    payload.update(overrides)
    response = client.post("/discounts", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["discount_id"]


class TestCreateDiscountEndpoint:
    def test_create(self, client):
        discount_id = _create_discount(client)
        discount = current_domain.repository_for(Discount).get(discount_id)
        assert discount.code == "SAVE10"

    def test_duplicate_code_rejected(self, client):
        _create_discount(client)
        response = client.post(
            "/discounts",
            json={
                "code": "SAVE10",
                "name": "Again",
                "discount_type": "Percentage",
                "percentage_value": 5,
                "start_date": NOW.isoformat(),
                "end_date": (NOW + timedelta(days=1)).isoformat(),
            },
        )
        assert response.status_code == 400

    def test_invalid_value_rejected(self, client):
        response = client.post(
            "/discounts",
            json={
                "code": "BAD",
                "name": "Bad",
                "discount_type": "FixedAmount",
                "fixed_value": 0,
                "start_date": NOW.isoformat(),
                "end_date": (NOW + timedelta(days=1)).isoformat(),
            },
        )
        assert response.status_code == 400


class TestReadDiscountEndpoints:
    def test_get(self, client):
        discount_id = _create_discount(client)
        response = client.get(f"/discounts/{discount_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "SAVE10"
        assert data["is_currently_active"] is True
        assert data["can_be_used"] is True

    def test_get_unknown_returns_404(self, client):
        assert client.get("/discounts/missing").status_code == 404

    def test_list_with_filter(self, client):
        _create_discount(client, code="SUMMER", name="Summer")
        _create_discount(client, code="WINTER", name="Winter")
        response = client.get("/discounts", params={"search": "summ"})
        assert response.status_code == 200
        assert [d["code"] for d in response.json()] == ["SUMMER"]

    def test_featured(self, client):
        _create_discount(client, code="STAR", is_featured=True)
        _create_discount(client, code="PLAIN")
        response = client.get("/discounts/featured")
        assert [d["code"] for d in response.json()] == ["STAR"]

    def test_statistics_of_unused_discount(self, client):
        discount_id = _create_discount(client)
        response = client.get(f"/discounts/{discount_id}/statistics")
        assert response.status_code == 200
        assert response.json()["total_usage_count"] == 0


class TestManageDiscountEndpoints:
    def test_update(self, client):
        discount_id = _create_discount(client)
        response = client.put(f"/discounts/{discount_id}", json={"percentage_value": 15})
        assert response.status_code == 200
        assert current_domain.repository_for(Discount).get(discount_id).percentage_value == 15.0

    def test_deactivate_and_activate(self, client):
        discount_id = _create_discount(client)
        assert client.post(f"/discounts/{discount_id}/deactivate").status_code == 200
        assert current_domain.repository_for(Discount).get(discount_id).is_active is False
        assert client.post(f"/discounts/{discount_id}/activate").status_code == 200

    def test_products(self, client):
        discount_id = _create_discount(client, scope="SpecificProducts")
        client.post(f"/discounts/{discount_id}/products", json={"product_ids": ["p1", "p2"]})
        client.post(f"/discounts/{discount_id}/products/remove", json={"product_ids": ["p1"]})
        assert client.get(f"/discounts/{discount_id}").json()["product_ids"] == ["p2"]

    def test_categories_under_wrong_scope_rejected(self, client):
        discount_id = _create_discount(client)
        response = client.post(f"/discounts/{discount_id}/categories", json={"category_ids": ["c1"]})
        assert response.status_code == 400

    def test_delete(self, client):
        discount_id = _create_discount(client)
        assert client.delete(f"/discounts/{discount_id}").status_code == 200
        assert client.get(f"/discounts/{discount_id}").status_code == 404
