# referral_engine/core/eligibility.py
"""
Eligibility evaluation for reward rules and commissions.

Every evaluator checks its gates in a fixed order and stops at the first
failing one, returning eligible=False with a zero amount. The payout amount
is computed only after all gates pass.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from referral_engine.config.levels import CommissionCategory
from referral_engine.core.aggregator import TeamSummary
from referral_engine.utils.money import ZERO, percentOf, roundMoney, toDecimal
from referral_engine.utils.time_machine import asUtc


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    amount: Decimal = ZERO
    conditions: Dict[str, bool] = field(default_factory=dict)

    @property
    def failedCondition(self) -> Optional[str]:
        for name, met in self.conditions.items():
            if not met:
                return name
        return None


@dataclass(frozen=True)
class UserContext:
    email: str
    level: int
    isActive: bool = True
    hasUpline: bool = False


@dataclass(frozen=True)
class TeamCommissionSettings:
    rates: Dict[int, Decimal]
    enabled: Dict[int, bool]


@dataclass(frozen=True)
class UplineCommissionSettings:
    enabled: bool
    rate: Decimal
    requiredReferrals: int


@dataclass
class RuleSet:
    teamRewards: List = field(default_factory=list)
    teamSizeRewards: List = field(default_factory=list)
    salaryPackages: List = field(default_factory=list)
    communityRules: List = field(default_factory=list)

    def enabledOnly(self) -> "RuleSet":
        def keep(rules):
            return [rule for rule in rules if rule.enabled is not False]

        return RuleSet(
            teamRewards=keep(self.teamRewards),
            teamSizeRewards=keep(self.teamSizeRewards),
            salaryPackages=keep(self.salaryPackages),
            communityRules=keep(self.communityRules),
        )


@dataclass(frozen=True)
class RuleEvaluation:
    category: CommissionCategory
    rule: object
    eligibility: Eligibility


Gate = Tuple[str, Callable[[], bool]]


def _evaluate(gates: Sequence[Gate], amount: Callable[[], Decimal]) -> Eligibility:
    conditions = {}
    for name, check in gates:
        met = bool(check())
        conditions[name] = met
        if not met:
            return Eligibility(False, ZERO, conditions)
    return Eligibility(True, roundMoney(amount()), conditions)


def meetsLevel(requiredLevel, userLevel: int) -> bool:
    """0 (or unset) on a rule means every level."""
    return not requiredLevel or userLevel >= int(requiredLevel)


def matchesUser(ruleEmail, email: str) -> bool:
    return not ruleEmail or ruleEmail.strip().lower() == (email or "").strip().lower()


def evaluateTeamReward(rule, context: UserContext, team: TeamSummary) -> Eligibility:
    return _evaluate(
        [
            ("teamBusiness", lambda: team.totalTeamBusiness >= toDecimal(rule.requiredAmount)),
            ("level", lambda: meetsLevel(rule.level, context.level)),
        ],
        lambda: toDecimal(rule.rewardAmount),
    )


def evaluateTeamSizeReward(rule, context: UserContext, team: TeamSummary) -> Eligibility:
    return _evaluate(
        [
            ("activeMembers", lambda: team.totalActiveMembers >= int(rule.requiredActiveMembers or 0)),
            ("level", lambda: meetsLevel(rule.level, context.level)),
            ("user", lambda: matchesUser(rule.userEmail, context.email)),
        ],
        lambda: toDecimal(rule.rewardAmount),
    )


def salaryPeriodElapsed(lastClaimAt: Optional[datetime], periodDays: int, now: datetime) -> bool:
    if lastClaimAt is None:
        return True
    return asUtc(now) >= asUtc(lastClaimAt) + timedelta(days=int(periodDays or 0))


def evaluateSalaryPackage(
        rule,
        context: UserContext,
        team: TeamSummary,
        lastClaimAt: Optional[datetime],
        now: datetime
) -> Eligibility:
    return _evaluate(
        [
            ("level", lambda: meetsLevel(rule.level, context.level)),
            ("user", lambda: matchesUser(rule.userEmail, context.email)),
            ("teamBusiness", lambda: team.totalTeamBusiness >= toDecimal(rule.requiredTeamBusiness)),
            ("activeReferrals", lambda: team.activeL1Referrals >= int(rule.requiredActiveReferrals or 0)),
            ("claimPeriod", lambda: salaryPeriodElapsed(lastClaimAt, rule.periodDays, now)),
        ],
        lambda: toDecimal(rule.amount),
    )


def evaluateCommunityCommission(rule, context: UserContext, team: TeamSummary) -> Eligibility:
    return _evaluate(
        [
            ("level", lambda: context.level >= int(rule.requiredLevel or 0)),
            ("directReferrals", lambda: team.activeL1Referrals >= int(rule.requiredDirectReferrals or 0)),
            ("teamSize", lambda: team.l1To3Size >= int(rule.requiredTeamSize or 0)),
        ],
        lambda: percentOf(team.community.earningsSinceCutoff, rule.commissionRate),
    )


def evaluateTeamCommission(settings: TeamCommissionSettings, context: UserContext, team: TeamSummary) -> Eligibility:
    """Sum of enabled layer rates applied to each layer's task earnings."""

    def amount():
        total = ZERO
        for number, layer in team.layers.items():
            if settings.enabled.get(number, False):
                total += percentOf(layer.earningsSinceCutoff, settings.rates.get(number, ZERO))
        return total

    return _evaluate(
        [
            ("userActive", lambda: context.isActive),
            ("layerEnabled", lambda: any(settings.enabled.get(n, False) for n in team.layers)),
        ],
        amount,
    )


def evaluateUplineCommission(
        settings: UplineCommissionSettings,
        context: UserContext,
        team: TeamSummary,
        uplineEarnings: Decimal
) -> Eligibility:
    """A share of the sponsor's own task earnings, paid down to the referral."""
    return _evaluate(
        [
            ("enabled", lambda: settings.enabled),
            ("userActive", lambda: context.isActive),
            ("upline", lambda: context.hasUpline),
            ("activeReferrals", lambda: team.activeL1Referrals >= int(settings.requiredReferrals or 0)),
        ],
        lambda: percentOf(uplineEarnings, settings.rate),
    )


def bonusForDeposit(tiers: Sequence, deposit) -> Decimal:
    """Bonus of the highest enabled tier whose minDeposit the deposit reaches; 0 when none does."""
    if deposit is None:
        return ZERO
    deposit = toDecimal(deposit)
    best = None
    for tier in tiers:
        if tier.enabled is False or toDecimal(tier.minDeposit) > deposit:
            continue
        if best is None or toDecimal(tier.minDeposit) > toDecimal(best.minDeposit):
            best = tier
    return toDecimal(best.bonusAmount) if best is not None else ZERO


def evaluateSignupBonus(enabled: bool, tiers: Sequence, context: UserContext, firstDeposit) -> Eligibility:
    return _evaluate(
        [
            ("enabled", lambda: enabled),
            ("userActive", lambda: context.isActive),
            ("depositTier", lambda: bonusForDeposit(tiers, firstDeposit) > 0),
        ],
        lambda: bonusForDeposit(tiers, firstDeposit),
    )


def evaluateReferralBonus(enabled: bool, tiers: Sequence, referral) -> Eligibility:
    """Bonus for one direct referral, banded by the referral's first deposit."""
    return _evaluate(
        [
            ("enabled", lambda: enabled),
            ("referralActive", lambda: bool(referral.isAccountActive)),
            ("depositTier", lambda: bonusForDeposit(tiers, referral.firstDepositAmount) > 0),
        ],
        lambda: bonusForDeposit(tiers, referral.firstDepositAmount),
    )


def evaluateAll(
        rules: RuleSet,
        context: UserContext,
        team: TeamSummary,
        lastSalaryClaims: Mapping[int, datetime],
        now: datetime
) -> List[RuleEvaluation]:
    """
    Evaluate every enabled rule independently. Several rules of one kind may
    all be eligible; none is dropped in favour of another.
    """
    enabled = rules.enabledOnly()
    results = []

    for rule in enabled.teamRewards:
        results.append(RuleEvaluation(CommissionCategory.TEAM_REWARD, rule,
                                      evaluateTeamReward(rule, context, team)))

    for rule in enabled.teamSizeRewards:
        results.append(RuleEvaluation(CommissionCategory.TEAM_SIZE_REWARD, rule,
                                      evaluateTeamSizeReward(rule, context, team)))

    for rule in enabled.salaryPackages:
        lastClaimAt = lastSalaryClaims.get(rule.packageID)
        results.append(RuleEvaluation(CommissionCategory.SALARY, rule,
                                      evaluateSalaryPackage(rule, context, team, lastClaimAt, now)))

    for rule in enabled.communityRules:
        results.append(RuleEvaluation(CommissionCategory.COMMUNITY, rule,
                                      evaluateCommunityCommission(rule, context, team)))

    return results
