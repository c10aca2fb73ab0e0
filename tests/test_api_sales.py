"""
Tests for the sales HTTP API (`api/routers/sales.py`, `api/main.py`).

The repository dependency is replaced with a fresh in-memory store per test.

Covers contract rules:
- Discounts and totals are visible in responses.
- Domain errors map to 400 / 404 / 409 with an ErrorResponse body.
- Listing honours filters, ordering and paging metadata.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_sale_repository
from api.main import app
from api.settings import Settings, get_settings
from support.builders import make_sale
from domain.time import utc_now
from repositories.memory_sale_repository import InMemorySaleRepository

PRODUCT_A = "00000000-0000-0000-0000-000000000001"
PRODUCT_B = "00000000-0000-0000-0000-000000000002"


@pytest.fixture
def client(repository: InMemorySaleRepository):
    app.dependency_overrides[get_sale_repository] = lambda: repository
    app.dependency_overrides[get_settings] = lambda: Settings(repository_backend="memory")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _item(product_id: str = PRODUCT_A, quantity: int = 4, unit_price: str = "10.00") -> dict:
    return {
        "product_id": product_id,
        "product_name": "Beer 350ml",
        "product_description": "Pilsen can",
        "quantity": quantity,
        "unit_price": unit_price,
    }


def _create(client: TestClient, sale_number: str = "S-1", items=None, customer_name: str = "Maria Silva") -> dict:
    response = client.post(
        "/api/v1/sales",
        json={
            "sale_number": sale_number,
            "customer": {
                "id": "00000000-0000-0000-0000-000000000101",
                "name": customer_name,
                "email": "maria@example.com",
            },
            "branch": {"id": "00000000-0000-0000-0000-000000000201", "name": "Centro"},
            "items": items if items is not None else [_item()],
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_sale_returns_discounted_totals(client: TestClient) -> None:
    body = _create(client)

    assert body["status"] == "Active"
    assert body["total_amount"] == "36.00"
    assert body["currency"] == "BRL"
    assert body["items"][0]["discount_percentage"] == "10"
    assert body["total_items_count"] == 4
    assert body["has_discounted_items"] is True


def test_create_sale_validation_errors_return_400(client: TestClient) -> None:
    response = client.post(
        "/api/v1/sales",
        json={
            "sale_number": "",
            "customer": {"id": str(uuid4()), "name": "Maria", "email": "bad"},
            "branch": {"id": str(uuid4()), "name": "Centro"},
            "items": [_item(quantity=21)],
        },
    )

    assert response.status_code == 400
    body = response.json()
    assert body["status_code"] == 400
    assert body["error"] == "Validation failed"
    fields = {error.split(":")[0] for error in body["errors"]}
    assert {"body.sale_number", "body.customer.email", "body.items.0.quantity"} <= fields


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"items": []}, "body.items"),
        ({"currency": "RE"}, "body.currency"),
        ({"sale_number": "S" * 51}, "body.sale_number"),
        ({"items": [_item(unit_price="0")]}, "body.items.0.unit_price"),
        ({"items": [_item(quantity=0)]}, "body.items.0.quantity"),
    ],
)
def test_create_sale_request_limits_return_400(client: TestClient, overrides: dict, field: str) -> None:
    payload = {
        "sale_number": "S-1",
        "customer": {"id": str(uuid4()), "name": "Maria", "email": "maria@example.com"},
        "branch": {"id": str(uuid4()), "name": "Centro"},
        "items": [_item()],
    }
    payload.update(overrides)

    response = client.post("/api/v1/sales", json=payload)

    assert response.status_code == 400
    assert any(error.startswith(field + ":") for error in response.json()["errors"])


def test_blank_fields_are_rejected_by_the_command(client: TestClient) -> None:
    """Whitespace passes the length checks but not the command's required-field rules."""

    response = client.post(
        "/api/v1/sales",
        json={
            "sale_number": "   ",
            "customer": {"id": str(uuid4()), "name": "Maria", "email": "maria@example.com"},
            "branch": {"id": str(uuid4()), "name": "  "},
            "items": [_item()],
        },
    )

    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "Sale number is required" in errors
    assert "Branch name is required" in errors


def test_modify_item_out_of_range_quantity_returns_400(client: TestClient) -> None:
    sale = _create(client)
    item_id = sale["items"][0]["id"]

    response = client.patch(f"/api/v1/sales/{sale['id']}/items/{item_id}", json={"quantity": 21})

    assert response.status_code == 400
    assert client.get(f"/api/v1/sales/{sale['id']}").json()["items"][0]["quantity"] == 4


def test_malformed_body_returns_400(client: TestClient) -> None:
    response = client.post("/api/v1/sales", json={"sale_number": "S-1"})

    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_duplicate_sale_number_returns_409(client: TestClient) -> None:
    _create(client)

    response = client.post(
        "/api/v1/sales",
        json={
            "sale_number": "S-1",
            "customer": {"id": str(uuid4()), "name": "Joao", "email": "joao@example.com"},
            "branch": {"id": str(uuid4()), "name": "Centro"},
            "items": [_item()],
        },
    )

    assert response.status_code == 409


def test_get_unknown_sale_returns_404(client: TestClient) -> None:
    response = client.get(f"/api/v1/sales/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"] == "Not found"


def test_add_item_merges_and_over_limit_returns_400(client: TestClient) -> None:
    sale = _create(client)

    merged = client.post(f"/api/v1/sales/{sale['id']}/items", json=_item(quantity=6))
    assert merged.status_code == 200
    assert merged.json()["merged"] is True
    assert merged.json()["item"]["quantity"] == 10
    assert merged.json()["sale"]["total_amount"] == "80.00"

    rejected = client.post(f"/api/v1/sales/{sale['id']}/items", json=_item(quantity=11))
    assert rejected.status_code == 400

    assert client.get(f"/api/v1/sales/{sale['id']}").json()["items"][0]["quantity"] == 10


def test_modify_item(client: TestClient) -> None:
    sale = _create(client, items=[_item(quantity=3)])
    item_id = sale["items"][0]["id"]

    response = client.patch(f"/api/v1/sales/{sale['id']}/items/{item_id}", json={"quantity": 10})

    assert response.status_code == 200
    body = response.json()
    assert body["previous_quantity"] == 3
    assert body["discount_changed"] is True
    assert body["item"]["total_amount"] == "80.00"


def test_remove_item_and_last_item_guard(client: TestClient) -> None:
    sale = _create(client, items=[_item(PRODUCT_A, 5, "15.00"), _item(PRODUCT_B, 3, "27.50")])
    first_id, second_id = (item["id"] for item in sale["items"])

    removed = client.delete(f"/api/v1/sales/{sale['id']}/items/{first_id}")
    assert removed.status_code == 200
    assert removed.json()["removed_item"]["total_amount"] == "67.50"
    assert removed.json()["sale"]["total_amount"] == "82.50"

    last = client.delete(f"/api/v1/sales/{sale['id']}/items/{second_id}")
    assert last.status_code == 409


def test_cancel_then_mutation_returns_409_and_reactivate(client: TestClient) -> None:
    sale = _create(client)

    cancelled = client.post(f"/api/v1/sales/{sale['id']}/cancel", json={"reason": "customer request"})
    assert cancelled.status_code == 200
    assert cancelled.json()["sale"]["status"] == "Cancelled"
    assert cancelled.json()["cancellation_reason"] == "customer request"

    assert client.post(f"/api/v1/sales/{sale['id']}/cancel").status_code == 409
    assert client.post(f"/api/v1/sales/{sale['id']}/items", json=_item(PRODUCT_B, 1)).status_code == 409

    reactivated = client.post(f"/api/v1/sales/{sale['id']}/reactivate")
    assert reactivated.status_code == 200
    assert reactivated.json()["cancelled_at"] is None


def test_cancel_outside_window_returns_409(client: TestClient, repository: InMemorySaleRepository) -> None:
    old = repository.create(make_sale(items=[(1, "1.00")], sale_date=utc_now() - timedelta(days=31)))

    response = client.post(f"/api/v1/sales/{old.id}/cancel")

    assert response.status_code == 409


def test_delete_sale(client: TestClient) -> None:
    sale = _create(client)

    assert client.delete(f"/api/v1/sales/{sale['id']}").status_code == 204
    assert client.delete(f"/api/v1/sales/{sale['id']}").status_code == 404


def test_list_sales_filters_and_pages(client: TestClient) -> None:
    _create(client, sale_number="S-1", items=[_item(quantity=1)])
    _create(client, sale_number="S-2", items=[_item(quantity=10)], customer_name="Joao Pereira")
    _create(client, sale_number="S-3", items=[_item(quantity=4)])

    response = client.get(
        "/api/v1/sales",
        params={"order_by": "TotalAmount", "order_direction": "desc", "page_size": 2},
    )
    body = response.json()
    assert response.status_code == 200
    assert [sale["sale_number"] for sale in body["items"]] == ["S-2", "S-3"]
    assert body["total_count"] == 3
    assert body["total_pages"] == 2
    assert body["has_next"] is True

    by_name = client.get("/api/v1/sales", params={"customer_name": "joao"}).json()
    assert [sale["sale_number"] for sale in by_name["items"]] == ["S-2"]

    by_status = client.get("/api/v1/sales", params={"status": "cancelled"}).json()
    assert by_status["items"] == []


def test_list_sales_invalid_query_returns_400(client: TestClient) -> None:
    response = client.get("/api/v1/sales", params={"page": 0, "page_size": 500, "status": "Open"})

    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "Page must be greater than 0" in errors
    assert "Page size must be between 1 and 100" in errors
    assert any(error.startswith("Status must be one of") for error in errors)
