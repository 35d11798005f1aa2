"""Tests for ReceiptService numbering and idempotence."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from coop_kernel.db.engine import session_scope
from coop_kernel.domain.clock import DeterministicClock
from coop_kernel.domain.dtos import LiquidationRequest
from coop_kernel.exceptions import LiquidationNotFoundError, ReceiptGenerationError
from coop_kernel.models.receipt import RECEIPT_TYPE_LIQUIDATION, Receipt
from coop_services.liquidation_service import LiquidationService
from coop_services.receipt_service import (
    ReceiptService,
    format_receipt_number,
    parse_receipt_sequence,
)

from tests.conftest import COOP_ID


async def _liquidate(session_factory, clock, create_member, amount="10.00"):
    """Commit a liquidation without issuing its receipt."""
    member = await create_member(savings=amount)
    service = LiquidationService(session_factory, clock=clock)
    [result] = await service.execute_liquidation(
        LiquidationRequest.create([member.id], "periodic", True, uuid4())
    )
    return result


class TestReceiptNumbers:
    def test_format(self):
        assert format_receipt_number(2025, 7) == "2025-0007"
        assert format_receipt_number(2025, 12345) == "2025-12345"
        assert format_receipt_number(2025, 3, width=6) == "2025-000003"

    def test_parse(self):
        assert parse_receipt_sequence("2025-0042") == 42


class TestGenerateReceipt:
    async def test_first_receipt_of_year(
        self, session_factory, deterministic_clock, create_member, receipt_service
    ):
        result = await _liquidate(session_factory, deterministic_clock, create_member, "42.50")

        receipt = await receipt_service.generate_receipt_for_liquidation(result.liquidation_id)

        assert receipt.receipt_number == "2025-0001"
        async with session_scope(session_factory) as session:
            row = await session.get(Receipt, receipt.receipt_id)
        assert row.liquidation_id == result.liquidation_id
        assert row.member_id == result.member_id
        assert row.amount == Decimal("42.50")
        assert row.receipt_type == RECEIPT_TYPE_LIQUIDATION

    async def test_idempotent_per_liquidation(
        self, session_factory, deterministic_clock, create_member, receipt_service
    ):
        result = await _liquidate(session_factory, deterministic_clock, create_member)

        first = await receipt_service.generate_receipt_for_liquidation(result.liquidation_id)
        second = await receipt_service.generate_receipt_for_liquidation(result.liquidation_id)

        assert first == second
        async with session_scope(session_factory) as session:
            rows = (await session.execute(select(Receipt))).scalars().all()
        assert len(rows) == 1

    async def test_sequence_increments_within_year(
        self, session_factory, deterministic_clock, create_member, receipt_service
    ):
        numbers = []
        for _ in range(3):
            result = await _liquidate(session_factory, deterministic_clock, create_member)
            receipt = await receipt_service.generate_receipt_for_liquidation(result.liquidation_id)
            numbers.append(receipt.receipt_number)

        assert numbers == ["2025-0001", "2025-0002", "2025-0003"]

    async def test_sequence_restarts_each_calendar_year(
        self, session_factory, deterministic_clock, create_member
    ):
        result_2025 = await _liquidate(session_factory, deterministic_clock, create_member)
        await ReceiptService(session_factory, deterministic_clock).generate_receipt_for_liquidation(
            result_2025.liquidation_id
        )

        next_year = DeterministicClock.on(date(2026, 1, 2))
        result_2026 = await _liquidate(session_factory, next_year, create_member)
        receipt = await ReceiptService(session_factory, next_year).generate_receipt_for_liquidation(
            result_2026.liquidation_id
        )

        assert receipt.receipt_number == "2026-0001"

    async def test_configurable_width(self, session_factory, deterministic_clock, create_member):
        result = await _liquidate(session_factory, deterministic_clock, create_member)
        receipt = await ReceiptService(
            session_factory, deterministic_clock, number_width=6
        ).generate_receipt_for_liquidation(result.liquidation_id)
        assert receipt.receipt_number == "2025-000001"

    async def test_sequence_grows_past_four_digits(
        self, session_factory, deterministic_clock, create_member, receipt_service
    ):
        seeded = await _liquidate(session_factory, deterministic_clock, create_member)
        async with session_scope(session_factory) as session:
            session.add(
                Receipt(
                    cooperative_id=COOP_ID,
                    liquidation_id=seeded.liquidation_id,
                    member_id=seeded.member_id,
                    receipt_number="2025-9999",
                    receipt_type=RECEIPT_TYPE_LIQUIDATION,
                    amount=Decimal("10.00"),
                    created_by_id=uuid4(),
                )
            )

        first = await _liquidate(session_factory, deterministic_clock, create_member)
        second = await _liquidate(session_factory, deterministic_clock, create_member)

        a = await receipt_service.generate_receipt_for_liquidation(first.liquidation_id)
        b = await receipt_service.generate_receipt_for_liquidation(second.liquidation_id)

        assert a.receipt_number == "2025-10000"
        assert b.receipt_number == "2025-10001"

    async def test_number_conflict_is_retried(
        self, session_factory, deterministic_clock, create_member, receipt_service,
        captured_logs, monkeypatch,
    ):
        taken = await _liquidate(session_factory, deterministic_clock, create_member)
        await receipt_service.generate_receipt_for_liquidation(taken.liquidation_id)
        result = await _liquidate(session_factory, deterministic_clock, create_member)

        original = ReceiptService._next_sequence
        calls = {"n": 0}

        async def stale_then_fresh(self, session, year):
            calls["n"] += 1
            if calls["n"] == 1:
                return 1
            return await original(self, session, year)

        monkeypatch.setattr(ReceiptService, "_next_sequence", stale_then_fresh)

        receipt = await receipt_service.generate_receipt_for_liquidation(result.liquidation_id)

        assert receipt.receipt_number == "2025-0002"
        assert calls["n"] == 2
        conflicts = [r for r in captured_logs() if r["message"] == "receipt_number_conflict"]
        assert [r["attempt"] for r in conflicts] == [1]
        async with session_scope(session_factory) as session:
            numbers = (
                await session.execute(select(Receipt.receipt_number).order_by(Receipt.receipt_number))
            ).scalars().all()
        assert numbers == ["2025-0001", "2025-0002"]

    async def test_conflicts_exhaust_attempts(
        self, session_factory, deterministic_clock, create_member, receipt_service, monkeypatch
    ):
        taken = await _liquidate(session_factory, deterministic_clock, create_member)
        await receipt_service.generate_receipt_for_liquidation(taken.liquidation_id)
        result = await _liquidate(session_factory, deterministic_clock, create_member)

        async def always_stale(self, session, year):
            return 1

        monkeypatch.setattr(ReceiptService, "_next_sequence", always_stale)

        with pytest.raises(ReceiptGenerationError) as exc_info:
            await receipt_service.generate_receipt_for_liquidation(result.liquidation_id)
        assert exc_info.value.liquidation_id == str(result.liquidation_id)

    async def test_unknown_liquidation(self, receipt_service):
        with pytest.raises(LiquidationNotFoundError):
            await receipt_service.generate_receipt_for_liquidation(uuid4())

    def test_width_must_be_positive(self):
        with pytest.raises(ValueError):
            ReceiptService(lambda: None, number_width=0)
