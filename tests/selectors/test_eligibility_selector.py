"""Tests for the periodic-liquidation eligibility scan."""

from datetime import date
from uuid import uuid4

import pytest

from coop_kernel.db.engine import session_scope
from coop_kernel.domain.dtos import LiquidationRequest
from coop_kernel.selectors.eligibility_selector import EligibilitySelector

from tests.conftest import COOP_ID, TODAY


async def _pending(session_factory, cooperative_id=COOP_ID, as_of=TODAY, min_years=6):
    async with session_scope(session_factory) as session:
        return await EligibilitySelector(session, min_years=min_years).get_members_pending_liquidation(
            cooperative_id, as_of
        )


class TestEligibility:
    async def test_threshold_is_inclusive(self, session_factory, create_member):
        exactly_six = await create_member(affiliation_date=date(2019, 3, 15))
        almost_six = await create_member(affiliation_date=date(2019, 3, 16))

        pending = await _pending(session_factory)

        ids = [p.member_id for p in pending]
        assert exactly_six.id in ids
        assert almost_six.id not in ids

    async def test_last_liquidation_resets_the_clock(self, session_factory, create_member):
        old_member = await create_member(
            affiliation_date=date(2000, 1, 1), last_liquidation_date=date(2022, 1, 1)
        )

        assert await _pending(session_factory) == []
        assert [p.member_id for p in await _pending(session_factory, min_years=3)] == [old_member.id]

    async def test_inactive_and_other_cooperatives_excluded(self, session_factory, create_member):
        await create_member(affiliation_date=date(2000, 1, 1), is_active=False)
        await create_member(affiliation_date=date(2000, 1, 1), cooperative_id="other-coop")

        assert await _pending(session_factory) == []

    async def test_most_overdue_first(self, session_factory, create_member):
        seven = await create_member(full_name="B", affiliation_date=date(2018, 1, 1))
        ten = await create_member(full_name="C", affiliation_date=date(2015, 1, 1))
        seven_older = await create_member(full_name="A", affiliation_date=date(2017, 6, 1))

        pending = await _pending(session_factory)

        assert [p.member_id for p in pending] == [ten.id, seven_older.id, seven.id]
        assert [p.years_since_last_liquidation for p in pending] == [10, 7, 7]

    async def test_years_field_uses_reference_date(self, session_factory, create_member):
        member = await create_member(
            affiliation_date=date(2001, 1, 1), last_liquidation_date=date(2016, 6, 1)
        )
        [pending] = await _pending(session_factory)
        assert pending.member_id == member.id
        assert pending.years_since_last_liquidation == 8
        assert pending.member.reference_date == date(2016, 6, 1)

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            EligibilitySelector(session=None, min_years=-1)


class TestEligibilityThroughService:
    async def test_service_defaults_to_clock_today(self, liquidation_service, create_member):
        member = await create_member(affiliation_date=date(2019, 3, 15))
        pending = await liquidation_service.get_members_pending_liquidation(COOP_ID)
        assert [p.member_id for p in pending] == [member.id]

    async def test_liquidated_member_drops_out(self, liquidation_service, create_member):
        member = await create_member(savings="5.00", affiliation_date=date(2010, 1, 1))
        await liquidation_service.execute_liquidation(
            LiquidationRequest.create([member.id], "periodic", True, uuid4())
        )

        assert await liquidation_service.get_members_pending_liquidation(COOP_ID) == []
