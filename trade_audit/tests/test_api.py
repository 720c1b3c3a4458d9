"""
API integration tests for the administrative trade endpoints.
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from trade_audit.api.models import OrderRecordRequest
from trade_audit.config import Settings
from trade_audit.main import app
from trade_audit.services.approval_service import TradeApprovalService
from trade_audit.services.order_store import InMemoryOrderStore
from trade_audit.api.routes import trade
import trade_audit.main as main_module


@pytest.fixture
def test_client():
    """Create a test client backed by a fresh in-memory store."""
    main_module.order_store = InMemoryOrderStore()
    main_module.approval_service = TradeApprovalService(main_module.order_store, Settings())

    with TestClient(app) as client:
        yield client

    main_module.order_store = None
    main_module.approval_service = None
    trade.set_approval_service(None)


def submit(client, order_id, side, price, quantity="100", symbol="600000",
           created_at="2026-10-19T09:30:00Z", **extra):
    payload = {
        "id": order_id,
        "trade_type": "a-share",
        "user_id": f"user-{order_id}",
        "symbol": symbol,
        "side": side,
        "quantity": quantity,
        "price": price,
        "created_at": created_at,
    }
    payload.update(extra)
    response = client.post("/api/admin/trade/orders", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


ADMIN = {"admin_id": "admin-1", "admin_name": "Operations"}


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_check(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["orders"] == 0
        assert "X-Request-ID" in response.headers

    def test_root(self, test_client):
        assert test_client.get("/").json()["status"] == "operational"


class TestOrderIntake:
    """Order ingestion and retrieval."""

    def test_submit_and_get(self, test_client):
        created = submit(test_client, "b1", "buy", "10.00")

        assert created["order_id"] == "b1"
        assert created["trade_type"] == "a-share"
        assert created["resolved_price"] == "10.00"
        assert created["attributes"]["price"] == "10.00"

        response = test_client.get("/api/admin/trade/b1")
        assert response.status_code == 200
        assert response.json()["status"] == "pending"

    def test_board_order_resolves_limit_up_price(self, test_client):
        response = test_client.post("/api/admin/trade/orders", json={
            "trade_type": "board",
            "user_id": "u-1",
            "symbol": "600000",
            "side": "buy",
            "quantity": "100",
            "limit_up_price": "11.00",
        })

        assert response.status_code == 201
        assert response.json()["resolved_price"] == "11.00"

    def test_documented_example_without_id(self, test_client):
        example = OrderRecordRequest.model_config["json_schema_extra"]["example"]
        assert "id" not in example

        response = test_client.post("/api/admin/trade/orders", json=example)

        assert response.status_code == 201, response.text
        order_id = response.json()["order_id"]
        assert test_client.get(f"/api/admin/trade/{order_id}").status_code == 200

    def test_nan_price_is_400(self, test_client):
        response = test_client.post("/api/admin/trade/orders", json={
            "trade_type": "a-share", "user_id": "u-1", "symbol": "600000",
            "side": "buy", "quantity": "1", "price": "NaN",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidOrderException"
        assert test_client.get("/api/admin/trade/matches").status_code == 200

    def test_invalid_side_is_422(self, test_client):
        response = test_client.post("/api/admin/trade/orders", json={
            "trade_type": "a-share", "user_id": "u-1", "symbol": "600000",
            "side": "hold", "quantity": "1", "price": "1",
        })

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_missing_price_is_400(self, test_client):
        response = test_client.post("/api/admin/trade/orders", json={
            "trade_type": "a-share", "user_id": "u-1", "symbol": "600000",
            "side": "buy", "quantity": "1",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidOrderException"

    def test_unknown_order_is_404(self, test_client):
        response = test_client.get("/api/admin/trade/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "OrderNotFoundException"


class TestListing:
    """Paginated listing."""

    def test_list_pending(self, test_client):
        submit(test_client, "o1", "buy", "10", created_at="2026-10-19T09:30:00Z")
        submit(test_client, "o2", "sell", "11", created_at="2026-10-19T09:31:00Z")
        submit(test_client, "o3", "sell", "11", status="completed")

        data = test_client.get("/api/admin/trade", params={"limit": 1}).json()

        assert data["success"] is True
        assert data["type"] == "all"
        assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
        assert data["data"][0]["order_id"] == "o2"

    def test_list_all_statuses(self, test_client):
        submit(test_client, "o1", "buy", "10")
        submit(test_client, "o2", "buy", "10", status="rejected")

        data = test_client.get("/api/admin/trade", params={"status": "all"}).json()

        assert data["pagination"]["total"] == 2

    def test_invalid_status_filter(self, test_client):
        response = test_client.get("/api/admin/trade", params={"status": "lost"})

        assert response.status_code == 422


class TestMatchingFlow:
    """Propose, confirm and conflict."""

    def test_propose_and_confirm(self, test_client):
        submit(test_client, "b1", "buy", "10.0", quantity="100")
        submit(test_client, "s1", "sell", "9.5", quantity="50", created_at="2026-10-19T09:35:00Z")

        data = test_client.get("/api/admin/trade/matches", params={"symbol": "600000"}).json()

        assert data["count"] == 1
        match = data["matches"][0]
        assert match["matched"] is True
        assert Decimal(match["match_price"]) == Decimal("9.75")
        assert Decimal(match["match_quantity"]) == Decimal("50")

        response = test_client.post("/api/admin/trade/matches/confirm", json={
            "buy_order_id": "b1", "sell_order_id": "s1", **ADMIN,
        })
        assert response.status_code == 200
        assert test_client.get("/api/admin/trade/b1").json()["status"] == "completed"

        again = test_client.post("/api/admin/trade/matches/confirm", json={
            "buy_order_id": "b1", "sell_order_id": "s1", **ADMIN,
        })
        assert again.status_code == 409
        assert again.json()["error"] == "MatchConflictException"

    def test_no_cross_no_match(self, test_client):
        submit(test_client, "b1", "buy", "9.0")
        submit(test_client, "s1", "sell", "9.5")

        assert test_client.get("/api/admin/trade/matches").json()["count"] == 0

    def test_confirm_with_insufficient_balance(self, test_client):
        submit(test_client, "b1", "buy", "10", quantity="100")
        submit(test_client, "s1", "sell", "9")

        response = test_client.post("/api/admin/trade/matches/confirm", json={
            "buy_order_id": "b1", "sell_order_id": "s1", "buyer_balance": "500", **ADMIN,
        })

        assert response.status_code == 409
        assert response.json()["error"] == "IneligibleOrderException"


class TestReviewAndOverride:
    """Review decisions, eligibility and forced execution."""

    def test_approve(self, test_client):
        submit(test_client, "o1", "buy", "10")

        response = test_client.post("/api/admin/trade/review", json={
            "action": "approve", "order_id": "o1", **ADMIN,
        })

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["approved_by"] == "admin-1"

    def test_reject_without_reason_is_400(self, test_client):
        submit(test_client, "o1", "buy", "10")

        response = test_client.post("/api/admin/trade/review", json={
            "action": "reject", "order_id": "o1", **ADMIN,
        })

        assert response.status_code == 400

    def test_review_completed_order_is_409(self, test_client):
        submit(test_client, "o1", "buy", "10", status="completed")

        response = test_client.post("/api/admin/trade/review", json={
            "action": "cancel", "order_id": "o1", **ADMIN,
        })

        assert response.status_code == 409

    def test_eligibility(self, test_client):
        submit(test_client, "o1", "buy", "10", quantity="100")

        ok = test_client.post("/api/admin/trade/o1/eligibility", json={"available_balance": "1000"})
        short = test_client.post("/api/admin/trade/o1/eligibility", json={"available_balance": "10"})

        assert ok.json()["allowed"] is True
        assert short.json() == {
            "order_id": "o1",
            "allowed": False,
            "reason": "insufficient account balance",
            "required_amount": "1000",
        }

    def test_force_execute(self, test_client):
        submit(test_client, "o1", "buy", "10", status="rejected")

        response = test_client.post("/api/admin/trade/o1/force-execute", json=ADMIN)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["approved_by"] == "admin-1"
        assert data["approved_at"]
