"""
Tests for the administrative approval workflow.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from trade_audit.config import Settings
from trade_audit.core.eligibility import REASON_INSUFFICIENT_BALANCE
from trade_audit.core.order import BlockOrder, OrderStatus, TradeType
from trade_audit.services.approval_service import TradeApprovalService
from trade_audit.services.order_store import InMemoryOrderStore
from trade_audit.utils.exceptions import (
    IneligibleOrderException,
    InvalidOrderException,
    InvalidReviewActionException,
    MatchConflictException,
    OrderNotFoundException,
    OrderStateException,
    ValidationException,
)


T1 = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def record(order_id, side, price, quantity="100", minutes=0, symbol="600000",
           trade_type="a-share", **extra):
    rec = {
        "id": order_id,
        "user_id": f"user-{order_id}",
        "trade_type": trade_type,
        "symbol": symbol,
        "side": side,
        "quantity": quantity,
        "created_at": (T1 + timedelta(minutes=minutes)).isoformat(),
    }
    if price is not None:
        rec["price"] = price
    rec.update(extra)
    return rec


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def service(store):
    return TradeApprovalService(store, Settings())


class TestIngestAndList:
    """Order intake and listing."""

    def test_ingest_saves_snapshot(self, service, store):
        order = service.ingest_order(record("b1", "buy", "10"))

        assert store.get("b1") == order
        assert len(store) == 1

    def test_ingest_rejects_invalid_record(self, service, store):
        with pytest.raises(InvalidOrderException):
            service.ingest_order(record("b1", "buy", None))

        assert len(store) == 0

    def test_ingest_record_without_id(self, service, store):
        rec = record("unused", "buy", "10")
        del rec["id"]

        order = service.ingest_order(rec)

        assert store.get(order.order_id) == order

    def test_nan_price_is_refused_and_matching_still_works(self, service, store):
        with pytest.raises(InvalidOrderException):
            service.ingest_order(record("b1", "buy", "NaN"))
        service.ingest_order(record("b2", "buy", "10"))
        service.ingest_order(record("s1", "sell", "9"))

        matches = service.propose_matches()

        assert len(store) == 2
        assert [(m.buy_order.order_id, m.sell_order.order_id) for m in matches] == [("b2", "s1")]

    def test_list_newest_first_with_pagination(self, service):
        for i in range(5):
            service.ingest_order(record(f"o{i}", "buy", "10", minutes=i))

        page1, total = service.list_orders(page=1, limit=2)
        page3, _ = service.list_orders(page=3, limit=2)

        assert total == 5
        assert [o.order_id for o in page1] == ["o4", "o3"]
        assert [o.order_id for o in page3] == ["o0"]

    def test_list_filters(self, service):
        service.ingest_order(record("a1", "buy", "10"))
        service.ingest_order(record("bk1", "sell", "10", trade_type="block", min_quantity="10"))
        service.ingest_order(record("a2", "buy", "10", status="completed"))

        blocks, total = service.list_orders(trade_type=TradeType.BLOCK)
        pending, _ = service.list_orders()
        everything, all_total = service.list_orders(status=None)

        assert [o.order_id for o in blocks] == ["bk1"] and total == 1
        assert {o.order_id for o in pending} == {"a1", "bk1"}
        assert all_total == 3

    def test_list_rejects_bad_page(self, service):
        with pytest.raises(ValidationException):
            service.list_orders(page=0)
        with pytest.raises(ValidationException):
            service.list_orders(limit=10_000)

    def test_get_missing_order(self, service):
        with pytest.raises(OrderNotFoundException):
            service.get_order("nope")


class TestProposeMatches:
    """Matching pass over stored orders."""

    def test_only_executable_orders_take_part(self, service):
        service.ingest_order(record("b1", "buy", "10"))
        service.ingest_order(record("b2", "buy", "10", status="rejected"))
        service.ingest_order(record("s1", "sell", "9.5", quantity="50", status="approved"))

        matches = service.propose_matches()

        assert len(matches) == 1
        assert matches[0].buy_order.order_id == "b1"
        assert matches[0].match_price == Decimal("9.75")
        assert matches[0].match_quantity == Decimal("50")

    def test_symbol_filter(self, service):
        service.ingest_order(record("b1", "buy", "10", symbol="600000"))
        service.ingest_order(record("s1", "sell", "9", symbol="600000"))
        service.ingest_order(record("b2", "buy", "10", symbol="000001"))
        service.ingest_order(record("s2", "sell", "9", symbol="000001"))

        matches = service.propose_matches(symbol="000001")

        assert [(m.buy_order.order_id, m.sell_order.order_id) for m in matches] == [("b2", "s2")]

    def test_subscriptions_excluded(self, service):
        service.ingest_order(record("b1", "buy", "10"))
        service.ingest_order(record("ipo1", "sell", None, trade_type="ipo", ipo_code="787001",
                                    issue_price="25", apply_quantity="100"))

        assert service.propose_matches() == []

    def test_literal_zero_price_when_configured(self, store):
        service = TradeApprovalService(store, Settings(exclude_unpriced_orders=False))
        service.ingest_order(record("b1", "buy", "10"))
        service.ingest_order(record("ipo1", "sell", None, trade_type="ipo", ipo_code="787001",
                                    issue_price="25", apply_quantity="100"))

        assert len(service.propose_matches()) == 1


class TestReview:
    """Approve, reject and cancel."""

    def test_approve(self, service, store):
        service.ingest_order(record("o1", "buy", "10"))

        updated = service.review_order("o1", "approve", "admin-1", "Ops")

        assert updated.status == OrderStatus.APPROVED
        assert updated.approved_by == "admin-1"
        assert store.get("o1").status == OrderStatus.APPROVED
        entry = store.audit_entries()[-1]
        assert entry.action == "order_approve"
        assert entry.target_type == "order"
        assert entry.target_id == "o1"

    def test_reject_requires_reason(self, service):
        service.ingest_order(record("o1", "buy", "10"))

        with pytest.raises(InvalidReviewActionException):
            service.review_order("o1", "reject", "admin-1", "Ops")

        updated = service.review_order("o1", "reject", "admin-1", "Ops", reason="Price off market")
        assert updated.status == OrderStatus.REJECTED
        assert updated.reject_reason == "Price off market"

    def test_cancel_approved_order(self, service):
        service.ingest_order(record("o1", "buy", "10", status="approved"))

        assert service.review_order("o1", "cancel", "admin-1", "Ops").status == OrderStatus.CANCELLED

    def test_unknown_action(self, service):
        service.ingest_order(record("o1", "buy", "10"))

        with pytest.raises(InvalidReviewActionException):
            service.review_order("o1", "freeze", "admin-1", "Ops")

    def test_cannot_approve_twice(self, service):
        service.ingest_order(record("o1", "buy", "10"))
        service.review_order("o1", "approve", "admin-1", "Ops")

        with pytest.raises(OrderStateException):
            service.review_order("o1", "approve", "admin-1", "Ops")

    def test_cannot_review_completed_order(self, service):
        service.ingest_order(record("o1", "buy", "10", status="completed"))

        with pytest.raises(OrderStateException):
            service.review_order("o1", "cancel", "admin-1", "Ops")

    def test_block_audit_target(self, service, store):
        service.ingest_order(record("bk1", "sell", "10", trade_type="block", min_quantity="10"))

        service.review_order("bk1", "approve", "admin-1", "Ops")

        assert store.audit_entries()[-1].action == "block_order_approve"


class TestConfirmMatch:
    """Confirming candidates settles both orders once."""

    def test_confirm_settles_both_orders(self, service, store):
        service.ingest_order(record("b1", "buy", "10.0", quantity="100"))
        service.ingest_order(record("s1", "sell", "9.5", quantity="50"))

        result = service.confirm_match("b1", "s1", "admin-1", "Ops")

        assert result.matched
        assert result.match_price == Decimal("9.75")
        for order_id in ("b1", "s1"):
            settled = store.get(order_id)
            assert settled.status == OrderStatus.COMPLETED
            assert settled.approved_by == "admin-1"
        entry = store.audit_entries()[-1]
        assert entry.action == "match_confirm"
        assert entry.target_id == "b1:s1"

    def test_overlapping_candidate_is_refused(self, service):
        service.ingest_order(record("b1", "buy", "10", minutes=0))
        service.ingest_order(record("b2", "buy", "10", minutes=1))
        service.ingest_order(record("s1", "sell", "9"))

        candidates = service.propose_matches()
        assert [m.buy_order.order_id for m in candidates] == ["b1", "b2"]

        service.confirm_match("b1", "s1", "admin-1", "Ops")

        with pytest.raises(MatchConflictException):
            service.confirm_match("b2", "s1", "admin-1", "Ops")
        assert service.propose_matches() == []

    def test_non_crossing_pair_is_refused(self, service):
        service.ingest_order(record("b1", "buy", "9"))
        service.ingest_order(record("s1", "sell", "9.5"))

        with pytest.raises(MatchConflictException):
            service.confirm_match("b1", "s1", "admin-1", "Ops")

    def test_sides_must_be_buy_and_sell(self, service):
        service.ingest_order(record("b1", "buy", "10"))
        service.ingest_order(record("b2", "buy", "9"))

        with pytest.raises(ValidationException):
            service.confirm_match("b1", "b2", "admin-1", "Ops")

    def test_buyer_balance_checked_when_given(self, service, store):
        service.ingest_order(record("b1", "buy", "10", quantity="100"))
        service.ingest_order(record("s1", "sell", "9"))

        with pytest.raises(IneligibleOrderException) as exc_info:
            service.confirm_match("b1", "s1", "admin-1", "Ops", buyer_balance="999")

        assert exc_info.value.details["reason"] == REASON_INSUFFICIENT_BALANCE
        assert store.get("b1").status == OrderStatus.PENDING

        service.confirm_match("b1", "s1", "admin-1", "Ops", buyer_balance="1000")
        assert store.get("b1").status == OrderStatus.COMPLETED

    def test_block_orders_flagged_matched(self, service, store):
        service.ingest_order(record("b1", "buy", "10", trade_type="block", min_quantity="10"))
        service.ingest_order(record("s1", "sell", "10", trade_type="block", min_quantity="10"))

        service.confirm_match("b1", "s1", "admin-1", "Ops")

        settled = store.get("s1")
        assert isinstance(settled, BlockOrder)
        assert settled.is_matched is True

    def test_mixed_kind_match_audit_names_both_kinds(self, service, store):
        service.ingest_order(record("b1", "buy", None, trade_type="board", limit_up_price="11"))
        service.ingest_order(record("s1", "sell", "10", trade_type="block", min_quantity="10"))

        service.confirm_match("b1", "s1", "admin-1", "Ops")

        entry = store.audit_entries()[-1]
        assert entry.target_type == "match"
        assert "board_strategy buy" in entry.description
        assert "block_order sell" in entry.description


class TestForceExecuteAndEligibility:
    """Manual settlement and funding checks."""

    def test_force_execute_persists_and_audits(self, service, store):
        service.ingest_order(record("o1", "buy", "10", status="rejected"))

        completed = service.force_execute_order("o1", "admin-9", "Ops", reason="Manual settlement")

        assert completed.status == OrderStatus.COMPLETED
        assert store.get("o1") == completed
        entry = store.audit_entries()[-1]
        assert entry.action == "order_force_execute"
        assert entry.reason == "Manual settlement"

    def test_force_execute_missing_order(self, service):
        with pytest.raises(OrderNotFoundException):
            service.force_execute_order("nope", "admin-9", "Ops")

    def test_check_eligibility(self, service):
        service.ingest_order(record("o1", "buy", "10", quantity="100"))

        assert service.check_eligibility("o1", "1000").allowed
        assert not service.check_eligibility("o1", Decimal("999")).allowed

    def test_check_eligibility_rejects_negative_balance(self, service):
        service.ingest_order(record("o1", "buy", "10"))

        with pytest.raises(ValidationException):
            service.check_eligibility("o1", "-1")
