"""
Unit tests for layer aggregation.

Tests cover:
- Zero-safety on empty layers
- Cutoff filtering of task earnings and activations
- Status re-read from the live user list
- Team totals across L1-L3 and the community tail
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from referral_engine.core.aggregator import summarize, summarizeTree, earningsSince, LayerSummary
from referral_engine.core.downline import buildTree
from tests.factories import makeUser, makeTask, NOW

CUTOFF = NOW - timedelta(days=1)


class TestZeroSafety:

    @pytest.mark.parametrize("cutoff", [None, CUTOFF])
    def test_empty_layer(self, cutoff, levelTable):
        others = [makeUser("x@example.com", task="500")]
        summary = summarize([], others, cutoff, {}, levelTable)

        assert summary == LayerSummary()
        assert summary.count == 0
        assert summary.totalDeposits == 0
        assert summary.earningsSinceCutoff == 0

    def test_member_without_tasks(self):
        member = makeUser("m@example.com")
        summary = summarize([member], [member], CUTOFF, {})
        assert summary.count == 1
        assert summary.earningsSinceCutoff == 0

    def test_none_balances(self):
        member = makeUser("m@example.com")
        member.balanceMain = None
        member.balanceTask = None
        assert summarize([member], [member], None, {}).totalDeposits == 0


class TestWindow:

    def test_earnings_before_cutoff_excluded(self):
        member = makeUser("m@example.com")
        taskLog = {"m@example.com": [
            makeTask("1.50", CUTOFF - timedelta(minutes=1)),
            makeTask("2.00", CUTOFF),
            makeTask("0.25", NOW),
        ]}
        summary = summarize([member], [member], CUTOFF, taskLog)
        assert summary.earningsSinceCutoff == Decimal("2.25")

    def test_no_cutoff_counts_everything(self):
        entries = [makeTask("1", CUTOFF - timedelta(days=30)), makeTask("2", NOW)]
        assert earningsSince(entries, None) == Decimal("3")

    def test_naive_timestamps_taken_as_utc(self):
        entries = [makeTask("4", NOW.replace(tzinfo=None))]
        assert earningsSince(entries, CUTOFF) == Decimal("4")

    def test_activations_since_cutoff(self):
        fresh = makeUser("a@example.com", activatedAt=NOW)
        old = makeUser("b@example.com", activatedAt=CUTOFF - timedelta(days=3))
        never = makeUser("c@example.com", status="inactive")
        summary = summarize([fresh, old, never], [fresh, old, never], CUTOFF, {})
        assert summary.activationsSinceCutoff == 1


class TestLiveStatus:

    def test_status_reread_from_all_users(self):
        snapshot = makeUser("m@example.com", status="active")
        live = makeUser("m@example.com", status="inactive", main="10")
        taskLog = {"m@example.com": [makeTask("5", NOW)]}

        summary = summarize([snapshot], [live], CUTOFF, taskLog)

        assert summary.activeCount == 0
        assert summary.earningsSinceCutoff == 0
        assert summary.totalDeposits == Decimal("10")

    def test_only_active_members_earn(self):
        active = makeUser("a@example.com")
        inactive = makeUser("i@example.com", status="inactive")
        taskLog = {
            "a@example.com": [makeTask("1", NOW)],
            "i@example.com": [makeTask("7", NOW)],
        }
        summary = summarize([active, inactive], [active, inactive], CUTOFF, taskLog)
        assert summary.activeCount == 1
        assert summary.earningsSinceCutoff == Decimal("1")

    def test_deposits_sum_all_balances(self):
        member = makeUser("m@example.com", main="10", task="20", interest="30.5")
        assert summarize([member], [member], None, {}).totalDeposits == Decimal("60.5")


class TestPotentialEarnings:

    def test_by_member_level(self, levelTable):
        bronze = makeUser("b@example.com", task="100")
        unranked = makeUser("u@example.com")
        summary = summarize([bronze, unranked], [bronze, unranked], None, {}, levelTable)
        # Bronze: 0.30 x 15 tasks
        assert summary.potentialDailyEarnings == Decimal("4.50")

    def test_without_level_table(self):
        member = makeUser("m@example.com", task="100")
        assert summarize([member], [member], None, {}).potentialDailyEarnings == 0


class TestTeamSummary:

    def test_layers_and_totals(self):
        root = makeUser("root@example.com", code="ROOT")
        l1a = makeUser("a@example.com", code="A", referredBy="ROOT", main="100")
        l1b = makeUser("b@example.com", code="B", referredBy="ROOT", status="inactive", task="50")
        l2 = makeUser("c@example.com", code="C", referredBy="A", interest="25")
        l3 = makeUser("d@example.com", code="D", referredBy="C")
        l4 = makeUser("e@example.com", code="E", referredBy="D", main="1000")
        users = [root, l1a, l1b, l2, l3, l4]
        taskLog = {
            "a@example.com": [makeTask("1", NOW)],
            "c@example.com": [makeTask("2", NOW)],
            "d@example.com": [makeTask("3", NOW)],
            "e@example.com": [makeTask("10", NOW)],
        }

        team = summarizeTree(buildTree(root, users), users, CUTOFF, taskLog)

        assert team.level1.count == 2
        assert team.activeL1Referrals == 1
        assert team.totalActiveMembers == 3
        assert team.totalTeamBusiness == Decimal("175")
        assert team.l1To3Size == 4
        assert team.teamEarningsSinceCutoff == Decimal("6")
        assert team.community.earningsSinceCutoff == Decimal("10")
        assert team.community.totalDeposits == Decimal("1000")

    def test_lonely_user(self):
        root = makeUser("root@example.com", code="ROOT")
        team = summarizeTree(buildTree(root, [root]), [root], None, {})
        assert team.totalTeamBusiness == 0
        assert team.totalActiveMembers == 0
        assert team.community == LayerSummary()
