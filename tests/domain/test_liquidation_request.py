"""Tests for LiquidationRequest validation and the liquidation DTOs."""

from decimal import Decimal
from uuid import uuid4

import pytest

from coop_kernel.domain.dtos import (
    LiquidationHistoryFilter,
    LiquidationOutcome,
    LiquidationRequest,
    LiquidationResult,
    ReceiptInfo,
    to_money,
)
from coop_kernel.exceptions import InvalidLiquidationRequestError
from coop_kernel.models.liquidation import LiquidationType


def _create(**overrides):
    kwargs = dict(
        member_ids=[uuid4()],
        liquidation_type="periodic",
        member_continues=True,
        processed_by=uuid4(),
        notes=None,
    )
    kwargs.update(overrides)
    return LiquidationRequest.create(**kwargs)


class TestLiquidationRequestCreate:
    """Malformed requests are rejected before any transaction opens."""

    def test_valid_request(self):
        request = _create(notes="year-end")
        assert request.liquidation_type is LiquidationType.PERIODIC
        assert request.member_continues is True
        assert request.notes == "year-end"

    def test_string_ids_are_parsed(self):
        member_id = uuid4()
        request = _create(member_ids=[str(member_id)], processed_by=str(member_id))
        assert request.member_ids == (member_id,)
        assert request.processed_by == member_id

    def test_duplicates_collapse_preserving_order(self):
        a, b = uuid4(), uuid4()
        request = _create(member_ids=[b, a, b, str(a)])
        assert request.member_ids == (b, a)

    @pytest.mark.parametrize("member_ids", [[], None, "not-a-list"])
    def test_empty_or_missing_member_ids(self, member_ids):
        with pytest.raises(InvalidLiquidationRequestError) as exc_info:
            _create(member_ids=member_ids)
        assert exc_info.value.field == "member_ids"
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.status_code == 400

    def test_malformed_member_id(self):
        with pytest.raises(InvalidLiquidationRequestError) as exc_info:
            _create(member_ids=["nope"])
        assert exc_info.value.field == "member_ids"

    @pytest.mark.parametrize("kind", ["annual", "", None, "PERIODIC"])
    def test_unknown_liquidation_type(self, kind):
        with pytest.raises(InvalidLiquidationRequestError) as exc_info:
            _create(liquidation_type=kind)
        assert exc_info.value.field == "liquidation_type"

    @pytest.mark.parametrize("flag", ["true", 1, 0, None])
    def test_member_continues_must_be_bool(self, flag):
        with pytest.raises(InvalidLiquidationRequestError) as exc_info:
            _create(member_continues=flag)
        assert exc_info.value.field == "member_continues"

    @pytest.mark.parametrize("actor", [None, ""])
    def test_processed_by_required(self, actor):
        with pytest.raises(InvalidLiquidationRequestError) as exc_info:
            _create(processed_by=actor)
        assert exc_info.value.field == "processed_by"

    def test_exit_type(self):
        assert _create(liquidation_type=LiquidationType.EXIT).liquidation_type is LiquidationType.EXIT


class TestLiquidationResult:
    def test_from_outcome_with_receipt(self):
        outcome = LiquidationOutcome(
            member_id=uuid4(),
            member_name="Ana",
            liquidation_id=uuid4(),
            total_liquidated=Decimal("10.00"),
            transaction_ids=(uuid4(),),
        )
        receipt = ReceiptInfo(receipt_id=uuid4(), receipt_number="2025-0001")
        result = LiquidationResult.from_outcome(outcome, receipt=receipt)
        assert result.receipt_number == "2025-0001"
        assert result.receipt_error is None
        assert result.transaction_ids == outcome.transaction_ids

    def test_from_outcome_with_error(self):
        outcome = LiquidationOutcome(uuid4(), "Ana", uuid4(), Decimal("1.00"), ())
        result = LiquidationResult.from_outcome(outcome, receipt_error="boom")
        assert result.receipt_id is None
        assert result.receipt_error == "boom"


class TestHelpers:
    def test_to_money_quantizes(self):
        assert to_money("1.005") == Decimal("1.00")
        assert to_money(None) == Decimal("0.00")
        assert str(to_money(3)) == "3.00"

    @pytest.mark.parametrize("limit", [0, -3, True, "5"])
    def test_history_filter_rejects_bad_limit(self, limit):
        with pytest.raises(InvalidLiquidationRequestError) as exc_info:
            LiquidationHistoryFilter(limit=limit)
        assert exc_info.value.field == "limit"

    def test_history_filter_normalises_type(self):
        assert LiquidationHistoryFilter(liquidation_type="exit").liquidation_type is LiquidationType.EXIT

    def test_history_filter_rejects_unknown_type(self):
        with pytest.raises(InvalidLiquidationRequestError) as exc_info:
            LiquidationHistoryFilter(liquidation_type="yearly")
        assert exc_info.value.field == "liquidation_type"
        assert exc_info.value.status_code == 400
