# referral_engine/core/aggregator.py
"""
Layer aggregation - deposits, activity and task earnings per downline layer
over a "since last credit" window.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Sequence

from referral_engine.config.levels import UserStatus
from referral_engine.core.downline import DownlineTree
from referral_engine.core.level_resolver import getLevelDefinition, resolveLevels
from referral_engine.utils.money import ZERO, toDecimal
from referral_engine.utils.time_machine import asUtc


@dataclass(frozen=True)
class LayerSummary:
    count: int = 0
    activeCount: int = 0
    totalDeposits: Decimal = ZERO
    earningsSinceCutoff: Decimal = ZERO
    activationsSinceCutoff: int = 0
    potentialDailyEarnings: Decimal = ZERO


@dataclass(frozen=True)
class TeamSummary:
    level1: LayerSummary
    level2: LayerSummary
    level3: LayerSummary
    community: LayerSummary
    l1To3Size: int = 0

    @property
    def layers(self) -> Dict[int, LayerSummary]:
        return {1: self.level1, 2: self.level2, 3: self.level3}

    @property
    def totalTeamBusiness(self) -> Decimal:
        return sum((layer.totalDeposits for layer in self.layers.values()), ZERO)

    @property
    def totalActiveMembers(self) -> int:
        return sum(layer.activeCount for layer in self.layers.values())

    @property
    def activeL1Referrals(self) -> int:
        return self.level1.activeCount

    @property
    def totalActivations(self) -> int:
        return sum(layer.activationsSinceCutoff for layer in self.layers.values())

    @property
    def teamEarningsSinceCutoff(self) -> Decimal:
        return sum((layer.earningsSinceCutoff for layer in self.layers.values()), ZERO)


def _onOrAfter(moment: Optional[datetime], cutoff: Optional[datetime]) -> bool:
    if moment is None:
        return False
    if cutoff is None:
        return True
    return asUtc(moment) >= asUtc(cutoff)


def earningsSince(entries: Iterable, cutoff: Optional[datetime]) -> Decimal:
    """Sum of logged task earnings completed at or after the cutoff."""
    return sum(
        (toDecimal(entry.earnings) for entry in entries if _onOrAfter(entry.completedAt, cutoff)),
        ZERO,
    )


def summarize(
        layerMembers: Sequence,
        allUsers: Sequence,
        cutoff: Optional[datetime],
        taskLog: Mapping[str, Iterable],
        levelTable: Optional[Sequence] = None,
        levelsByEmail: Optional[Mapping[str, int]] = None
) -> LayerSummary:
    """
    Roll up one layer.

    Status is re-read from allUsers, not from the (possibly stale) layer copy.
    Only currently active members contribute task earnings. A cutoff of None
    means "since the beginning".
    """
    if not layerMembers:
        return LayerSummary()

    current = {u.email: u for u in allUsers}
    if levelTable is not None and levelsByEmail is None:
        levelsByEmail = resolveLevels(allUsers, levelTable)

    activeCount = 0
    totalDeposits = ZERO
    earnings = ZERO
    activations = 0
    potential = ZERO

    for member in layerMembers:
        live = current.get(member.email, member)

        totalDeposits += toDecimal(live.balanceMain) + toDecimal(live.balanceTask) + toDecimal(live.balanceInterest)

        if live.status == UserStatus.ACTIVE:
            activeCount += 1
            earnings += earningsSince(taskLog.get(live.email, ()), cutoff)

        if _onOrAfter(live.activatedAt, cutoff):
            activations += 1

        if levelTable is not None:
            definition = getLevelDefinition(levelTable, levelsByEmail.get(live.email, 0))
            potential += toDecimal(definition.earningPerTask) * int(definition.dailyTasks or 0)

    return LayerSummary(
        count=len(layerMembers),
        activeCount=activeCount,
        totalDeposits=totalDeposits,
        earningsSinceCutoff=earnings,
        activationsSinceCutoff=activations,
        potentialDailyEarnings=potential,
    )


def summarizeTree(
        tree: DownlineTree,
        allUsers: Sequence,
        cutoff: Optional[datetime],
        taskLog: Mapping[str, Iterable],
        levelTable: Optional[Sequence] = None
) -> TeamSummary:
    """Summaries for L1, L2, L3 and the community tail."""
    levelsByEmail = resolveLevels(allUsers, levelTable) if levelTable is not None else None

    def layer(members):
        return summarize(members, allUsers, cutoff, taskLog, levelTable, levelsByEmail)

    return TeamSummary(
        level1=layer(tree.level1),
        level2=layer(tree.level2),
        level3=layer(tree.level3),
        community=layer(tree.tail),
        l1To3Size=tree.l1To3Size,
    )
