"""
Integration tests for the scheduled commission pass.

Tests cover:
- Team and community commissions credited from the task log
- Once-per-day crediting and window advance
- Inactive users earn nothing
- Upline commission when enabled
- Per-user error isolation in the full pass
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from models import Activity, CompletedTask, CommunityCommissionRule
from referral_engine.config.levels import UPLINE_COMMISSION_KEY
from referral_engine.exceptions import UserNotFound
from referral_engine.repositories.settings_repository import SettingsRepository
from referral_engine.services.commission_service import CommissionService
from tests.factories import NOW


def logTask(session, user, earnings, at):
    session.add(CompletedTask(userID=user.userID, title="task", earnings=Decimal(earnings), completedAt=at))
    session.commit()


@pytest.fixture
def network(session, addUser):
    """root -> a -> b -> c -> d, every member with task earnings two hours before NOW."""
    root = addUser("root@example.com", code="ROOT", task="1000")
    a = addUser("a@example.com", code="A", referredBy="ROOT")
    b = addUser("b@example.com", code="B", referredBy="A")
    c = addUser("c@example.com", code="C", referredBy="B")
    d = addUser("d@example.com", code="D", referredBy="C")

    earlier = NOW - timedelta(hours=2)
    for member, earnings in [(root, "40"), (a, "10"), (b, "20"), (c, "50"), (d, "30")]:
        logTask(session, member, earnings, earlier)

    session.add(CommunityCommissionRule(name="Community 10%", commissionRate=Decimal("10"), requiredLevel=1,
                                        requiredDirectReferrals=1, requiredTeamSize=3, enabled=True))
    session.commit()
    return {"root": root, "a": a, "b": b, "c": c, "d": d}


def creditsByCategory(result):
    return {credit["category"]: credit["amount"] for credit in result["credits"]}


class TestEvaluateUser:

    @pytest.mark.asyncio
    async def test_team_and_community(self, session, network):
        result = await CommissionService(session).evaluateUser("root@example.com", NOW)

        # 10% of 10, 5% of 20, 2% of 50; community 10% of 30
        assert creditsByCategory(result) == {"team": Decimal("3.00"), "community": Decimal("3.00")}
        assert result["totalCredited"] == Decimal("6.00")
        assert result["skipped"]["upline"] == "no_instructions"

        session.refresh(network["root"])
        assert network["root"].balanceMain == Decimal("6")
        assert session.query(Activity).count() == 2

    @pytest.mark.asyncio
    async def test_once_per_day(self, session, network):
        service = CommissionService(session)
        await service.evaluateUser("root@example.com", NOW)
        again = await service.evaluateUser("root@example.com", NOW + timedelta(minutes=30))

        assert again["credits"] == []
        assert again["skipped"]["team"] == "not_due"
        assert again["skipped"]["community"] == "not_due"

    @pytest.mark.asyncio
    async def test_next_day_pays_only_new_earnings(self, session, network):
        service = CommissionService(session)
        await service.evaluateUser("root@example.com", NOW)

        logTask(session, network["a"], "5", NOW + timedelta(hours=1))
        result = await service.evaluateUser("root@example.com", NOW + timedelta(days=1))

        assert creditsByCategory(result) == {"team": Decimal("0.50")}
        assert result["skipped"]["community"] == "non_positive_amount"

    @pytest.mark.asyncio
    async def test_inactive_user_earns_nothing(self, session, network):
        network["root"].status = "inactive"
        session.commit()

        result = await CommissionService(session).evaluateUser("root@example.com", NOW)

        assert result["credits"] == []
        assert set(result["skipped"].values()) == {"inactive"}
        assert session.query(Activity).count() == 0

    @pytest.mark.asyncio
    async def test_inactive_members_do_not_contribute(self, session, network):
        network["a"].status = "inactive"
        session.commit()

        result = await CommissionService(session).evaluateUser("root@example.com", NOW)

        # a's earnings drop out; community gate needs one active direct referral
        assert creditsByCategory(result) == {"team": Decimal("2.00")}

    @pytest.mark.asyncio
    async def test_tasks_after_now_wait_for_next_window(self, session, network):
        logTask(session, network["a"], "100", NOW + timedelta(minutes=5))
        result = await CommissionService(session).evaluateUser("root@example.com", NOW)
        assert creditsByCategory(result)["team"] == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_upline_commission(self, session, network):
        SettingsRepository(session).set(UPLINE_COMMISSION_KEY, {"enabled": True, "rate": 5, "requiredReferrals": 1})
        session.commit()

        result = await CommissionService(session).evaluateUser("a@example.com", NOW)

        # 5% of root's 40
        assert creditsByCategory(result)["upline"] == Decimal("2.00")

    @pytest.mark.asyncio
    async def test_unknown_user(self, session):
        with pytest.raises(UserNotFound):
            await CommissionService(session).evaluateUser("ghost@example.com", NOW)


class TestEvaluateAll:

    @pytest.mark.asyncio
    async def test_full_pass(self, session, network):
        results = await CommissionService(session).evaluateAll(NOW)

        assert results["checked"] == 5
        assert results["errors"] == 0
        # root 6.00, a 2.00 + 2.50 + 0.60, b 5.00 + 1.50, c 3.00; d has no downline
        assert results["credited"] == 4
        assert results["totalCredited"] == Decimal("20.60")

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, session, network, monkeypatch):
        service = CommissionService(session)
        original = service.evaluateUser

        async def flaky(email, now=None, snapshot=None):
            if email == "a@example.com":
                raise RuntimeError("boom")
            return await original(email, now, snapshot)

        monkeypatch.setattr(service, "evaluateUser", flaky)
        results = await service.evaluateAll(NOW)

        assert results["checked"] == 5
        assert results["errors"] == 1
        assert results["credited"] == 3
