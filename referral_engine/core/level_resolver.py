# referral_engine/core/level_resolver.py
"""
Level resolution - maps a user to a tier from committed balance and referrals.
All functions are pure: they read only their arguments.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from models import Level
from referral_engine.config.levels import LEVEL_CONFIG
from referral_engine.utils.money import ZERO, percentOf, roundMoney, toDecimal


def buildLevelTable(levelConfig: Dict[int, dict] = None) -> List[Level]:
    """Build transient Level rows from a config dict (defaults to LEVEL_CONFIG)."""
    levelConfig = levelConfig or LEVEL_CONFIG
    return [
        Level(level=number, enabled=True, **definition)
        for number, definition in sorted(levelConfig.items())
    ]


def committedBalanceOf(user) -> Decimal:
    return toDecimal(user.balanceTask) + toDecimal(user.balanceInterest)


def countDirectReferrals(user, allUsers: Iterable) -> int:
    """Organic direct referrals plus purchased referral credits."""
    organic = 0
    if user.referralCode:
        organic = sum(
            1 for other in allUsers
            if other.referredBy == user.referralCode and other.email != user.email
        )
    return organic + int(user.purchasedReferrals or 0)


def _levelFor(committed: Decimal, referrals: int, levelTable: Sequence) -> int:
    for definition in sorted(levelTable, key=lambda row: row.level, reverse=True):
        if definition.level <= 0 or definition.enabled is False:
            continue
        if committed >= toDecimal(definition.minAmount) and referrals >= int(definition.referrals or 0):
            return definition.level
    return 0


def resolveLevel(user, allUsers: Iterable, levelTable: Sequence) -> int:
    """
    Effective tier of a user.

    A manual override (including 0) wins outright. Otherwise the highest tier
    whose balance AND referral thresholds are both met is returned; 0 if none.
    """
    if user.overrideLevel is not None:
        return int(user.overrideLevel)

    return _levelFor(committedBalanceOf(user), countDirectReferrals(user, allUsers), levelTable)


def resolveLevels(allUsers: Sequence, levelTable: Sequence) -> Dict[str, int]:
    """Resolve every user in one pass over the referral links."""
    organic: Dict[str, int] = {}
    for other in allUsers:
        if other.referredBy:
            organic[other.referredBy] = organic.get(other.referredBy, 0) + 1

    levels = {}
    for user in allUsers:
        if user.overrideLevel is not None:
            levels[user.email] = int(user.overrideLevel)
            continue
        # a self-referral is never counted
        selfReferral = 1 if user.referralCode and user.referredBy == user.referralCode else 0
        referrals = organic.get(user.referralCode, 0) - selfReferral + int(user.purchasedReferrals or 0)
        levels[user.email] = _levelFor(committedBalanceOf(user), referrals, levelTable)
    return levels


def getLevelDefinition(levelTable: Sequence, level: int):
    """Row for a level; falls back to the floor tier, then to an empty tier-0 row."""
    byLevel = {row.level: row for row in levelTable}
    if level in byLevel:
        return byLevel[level]
    if 0 in byLevel:
        return byLevel[0]
    return Level(level=0, name="Unranked", minAmount=ZERO, rate=ZERO, referrals=0,
                 dailyTasks=0, monthlyWithdrawals=0, minWithdrawal=ZERO,
                 earningPerTask=ZERO, withdrawalFee=ZERO, enabled=True)


@dataclass(frozen=True)
class WithdrawalDecision:
    allowed: bool
    fee: Decimal
    net: Decimal
    reason: str = ""


def evaluateWithdrawal(levelDefinition, amount, withdrawalsThisMonth: int) -> WithdrawalDecision:
    """Apply a level's withdrawal rules: monthly allowance, min/max amount, percentage fee."""
    amount = toDecimal(amount)

    if amount <= 0:
        return WithdrawalDecision(False, ZERO, ZERO, "invalid_amount")

    allowance = int(levelDefinition.monthlyWithdrawals or 0)
    if withdrawalsThisMonth >= allowance:
        return WithdrawalDecision(False, ZERO, ZERO, "monthly_limit_reached")

    if amount < toDecimal(levelDefinition.minWithdrawal):
        return WithdrawalDecision(False, ZERO, ZERO, "below_minimum")

    maximum: Optional[Decimal] = levelDefinition.maxWithdrawal
    if maximum is not None and amount > toDecimal(maximum):
        return WithdrawalDecision(False, ZERO, ZERO, "above_maximum")

    fee = roundMoney(percentOf(amount, levelDefinition.withdrawalFee))
    return WithdrawalDecision(True, fee, amount - fee)
