"""
API Integration Tests
Exercise the HTTP surface: authentication, error mapping and workflows
"""
from decimal import Decimal

import pytest

API = "/api/v1"


def create_location(client, headers, catalog, stock, warehouse_id=None):
    response = client.post(f"{API}/stock-locations", headers=headers, json={
        "item_id": catalog.item_id,
        "warehouse_id": warehouse_id or catalog.main_id,
        "current_stock": stock,
        "min_stock": 10,
        "max_stock": 100,
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthentication:
    """Test suite for bearer token checks"""

    def test_missing_token(self, client):
        response = client.get(f"{API}/items")

        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get(f"{API}/items", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Could not validate credentials"

    def test_supplier_may_read_catalog(self, client, catalog, supplier_headers):
        response = client.get(f"{API}/items", headers=supplier_headers)

        assert response.status_code == 200
        assert [item["sku"] for item in response.json()] == ["BOLT-M8"]


class TestErrorMapping:
    """Test suite for domain errors rendered as HTTP responses"""

    def test_role_denied_is_403(self, client, warehouse_headers):
        response = client.post(f"{API}/categories", headers=warehouse_headers, json={"name": "Tools"})

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "AccessDeniedError"
        assert body["operation"] == "catalog.write"

    def test_missing_record_is_404(self, client, admin_headers):
        response = client.get(f"{API}/items/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {
            "error": "NotFoundError",
            "detail": "Item 999 not found",
            "entity": "Item",
            "id": 999,
        }

    def test_duplicate_is_409(self, client, catalog, admin_headers):
        response = client.post(f"{API}/warehouses", headers=admin_headers, json={"code": "wh01", "name": "Again"})

        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateError"

    def test_schema_violation_is_422(self, client, catalog, manager_headers):
        response = client.post(f"{API}/purchase-requests", headers=manager_headers, json={
            "item_id": catalog.item_id,
            "warehouse_id": catalog.main_id,
            "quantity_requested": 0,
        })

        assert response.status_code == 422

    def test_warehouse_code_with_separator_is_422(self, client, admin_headers):
        response = client.post(f"{API}/warehouses", headers=admin_headers, json={"code": "WH-9", "name": "Bad"})

        assert response.status_code == 422

    def test_invalid_quantity_is_422(self, client, acknowledged_po, warehouse_headers):
        response = client.post(f"{API}/grns", headers=warehouse_headers, json={
            "purchase_order_id": acknowledged_po.id,
            "quantity_received": 0,
        })

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidQuantityError"

    def test_insufficient_stock_is_409(self, client, catalog, admin_headers, warehouse_headers):
        create_location(client, admin_headers, catalog, 10)
        response = client.post(f"{API}/transfer-orders", headers=warehouse_headers, json={
            "from_warehouse_id": catalog.main_id,
            "to_warehouse_id": catalog.branch_id,
            "item_id": catalog.item_id,
            "requested_quantity": 25,
        })

        assert response.status_code == 409
        assert response.json() == {
            "error": "InsufficientStockError",
            "detail": "Insufficient stock in source warehouse. Available: 10, requested: 25",
            "available": 10,
            "requested": 25,
        }

    def test_second_decision_is_409(self, client, catalog, manager_headers):
        created = client.post(f"{API}/purchase-requests", headers=manager_headers, json={
            "item_id": catalog.item_id,
            "warehouse_id": catalog.main_id,
            "quantity_requested": 20,
        }).json()
        url = f"{API}/purchase-requests/{created['id']}/status"

        assert client.post(url, headers=manager_headers, json={"action": "approve"}).status_code == 200
        response = client.post(url, headers=manager_headers, json={"action": "reject"})

        assert response.status_code == 409
        assert response.json()["error"] == "AlreadyDecidedError"
        assert response.json()["current_status"] == "approved"


class TestProcurementFlow:
    """Test suite for the purchase request to stock path over HTTP"""

    def test_request_to_receipt(
        self, client, catalog, admin_headers, manager_headers, warehouse_headers, supplier_headers
    ):
        create_location(client, admin_headers, catalog, 5)

        run = client.post(f"{API}/purchase-requests/auto-create", headers=warehouse_headers)
        assert run.status_code == 200
        assert run.json()["created"] == 1
        request_id = run.json()["created_ids"][0]

        response = client.post(
            f"{API}/purchase-requests/{request_id}/status", headers=manager_headers, json={"action": "approve"}
        )
        assert response.json()["status"] == "approved"

        response = client.post(
            f"{API}/purchase-requests/{request_id}/purchase-order",
            headers=manager_headers,
            json={"supplier_id": catalog.supplier_id},
        )
        assert response.status_code == 201
        order = response.json()
        assert order["quantity_ordered"] == 95
        assert Decimal(order["unit_price"]) == Decimal("2.00")

        response = client.post(f"{API}/purchase-orders/{order['id']}/approve", headers=admin_headers)
        assert response.json()["status"] == "sent"

        response = client.get(f"{API}/purchase-orders", headers=supplier_headers)
        assert [o["id"] for o in response.json()] == [order["id"]]

        response = client.post(
            f"{API}/purchase-orders/{order['id']}/respond",
            headers=supplier_headers,
            json={"action": "acknowledge", "notes": "Shipping Friday"},
        )
        assert response.json()["status"] == "acknowledged"

        response = client.post(f"{API}/grns", headers=warehouse_headers, json={
            "purchase_order_id": order["id"],
            "quantity_received": 95,
            "batch_number": "LOT-42",
        })
        assert response.status_code == 201
        grn = response.json()
        assert grn["status"] == "pending"

        response = client.post(
            f"{API}/grns/{grn['id']}/decision", headers=manager_headers, json={"action": "approve"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        response = client.get(f"{API}/purchase-orders/{order['id']}", headers=admin_headers)
        assert response.json()["status"] == "completed"

        locations = client.get(
            f"{API}/stock-locations", headers=manager_headers, params={"warehouse_id": catalog.main_id}
        ).json()
        assert [loc["current_stock"] for loc in locations] == [100]

    def test_supplier_cannot_see_requests(self, client, supplier_headers):
        response = client.get(f"{API}/purchase-requests", headers=supplier_headers)

        assert response.status_code == 403

    def test_low_stock_report(self, client, catalog, admin_headers, manager_headers):
        create_location(client, admin_headers, catalog, 0)
        create_location(client, admin_headers, catalog, 50, warehouse_id=catalog.branch_id)

        response = client.get(f"{API}/stock-locations/low-stock", headers=manager_headers)

        assert response.status_code == 200
        report = response.json()
        assert report["summary"]["total_locations"] == 2
        assert report["summary"]["low_stock"] == 1
        assert report["summary"]["by_urgency"]["urgent"] == 1
        assert report["summary"]["by_warehouse"] == {"WH01": 1}
        assert report["items"][0]["suggested_quantity"] == 100


class TestTransfersApi:
    """Test suite for the transfer endpoints"""

    def test_transfer_round_trip(self, client, catalog, admin_headers, manager_headers, warehouse_headers):
        create_location(client, admin_headers, catalog, 40)

        response = client.post(f"{API}/transfer-orders", headers=warehouse_headers, json={
            "from_warehouse_id": catalog.main_id,
            "to_warehouse_id": catalog.branch_id,
            "item_id": catalog.item_id,
            "requested_quantity": 12,
        })
        assert response.status_code == 201
        transfer = response.json()
        assert transfer["status"] == "pending"
        assert transfer["priority"] == "low"

        response = client.post(
            f"{API}/transfer-orders/{transfer['id']}/decision",
            headers=manager_headers,
            json={"action": "approve", "approved_quantity": 10},
        )
        assert response.json()["approved_quantity"] == 10

        response = client.post(
            f"{API}/transfer-orders/{transfer['id']}/complete", headers=warehouse_headers, json={}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        stats = client.get(f"{API}/transfer-orders/stats", headers=manager_headers).json()
        assert stats["completed"] == 1
        assert stats["total"] == 1

    def test_same_warehouse_is_422(self, client, catalog, warehouse_headers):
        response = client.post(f"{API}/transfer-orders", headers=warehouse_headers, json={
            "from_warehouse_id": catalog.main_id,
            "to_warehouse_id": catalog.main_id,
            "item_id": catalog.item_id,
            "requested_quantity": 1,
        })

        assert response.status_code == 422


class TestAutomaticTriggerApi:
    """Test suite for scheduler control"""

    def test_status_requires_approver(self, client, warehouse_headers):
        response = client.get(f"{API}/automatic-trigger/status", headers=warehouse_headers)

        assert response.status_code == 403

    def test_run_start_stop(self, client, catalog, admin_headers, manager_headers):
        create_location(client, admin_headers, catalog, 2)

        response = client.post(f"{API}/automatic-trigger/run", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["result"]["created"] == 1
        assert response.json()["run_count"] == 1

        response = client.post(f"{API}/automatic-trigger/start", headers=manager_headers)
        assert response.json()["started"] is True
        assert response.json()["running"] is True

        response = client.post(f"{API}/automatic-trigger/start", headers=manager_headers)
        assert response.json()["started"] is False

        response = client.post(f"{API}/automatic-trigger/stop", headers=manager_headers)
        assert response.json()["stopped"] is True
        assert response.json()["running"] is False

    @pytest.mark.parametrize("path", ["status", "run"])
    def test_supplier_denied(self, client, supplier_headers, path):
        method = client.get if path == "status" else client.post

        response = method(f"{API}/automatic-trigger/{path}", headers=supplier_headers)

        assert response.status_code == 403


class TestDashboardApi:
    """Test suite for the dashboard endpoint"""

    def test_summary(self, client, catalog, admin_headers, warehouse_headers):
        create_location(client, admin_headers, catalog, 0)

        response = client.get(f"{API}/dashboard/summary", headers=warehouse_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "warehouse"
        assert body["counts"]["warehouses"] == 2
        assert body["counts"]["stock_locations"] == 1
        assert body["low_stock"]["low_stock"] == 1
        assert body["low_stock_locations"][0]["sku"] == "BOLT-M8"
        assert body["transfer_orders"]["total"] == 0

    def test_supplier_denied(self, client, catalog, supplier_headers):
        response = client.get(f"{API}/dashboard/summary", headers=supplier_headers)

        assert response.status_code == 403


class TestOpenApi:
    """Test suite for the published schema"""

    def test_error_body_documented(self, client):
        schema = client.get(f"{API}/openapi.json").json()

        assert "ErrorResponse" in schema["components"]["schemas"]
        responses = schema["paths"][f"{API}/grns/{{grn_id}}/decision"]["post"]["responses"]
        assert {"403", "404", "409"} <= set(responses)
