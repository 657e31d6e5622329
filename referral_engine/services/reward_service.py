# referral_engine/services/reward_service.py
"""
Reward claim service - team rewards, team-size rewards, salary packages
and the deposit-banded signup and referral bonuses.

Team and team-size rewards and the signup bonus pay once per user, the
referral bonus once per direct referral; salary packages pay again after
every `periodDays`.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
import logging

from models import User
from models.rewards.reward_claim import ONCE
from referral_engine.config.levels import CommissionCategory, UserStatus, BONUS_SIGNUP, BONUS_REFERRAL
from referral_engine.core.aggregator import summarizeTree, TeamSummary
from referral_engine.core.downline import buildTree
from referral_engine.core.eligibility import (
    Eligibility, UserContext,
    evaluateTeamReward, evaluateTeamSizeReward, evaluateSalaryPackage,
    evaluateSignupBonus, evaluateReferralBonus,
)
from referral_engine.core.level_resolver import resolveLevel
from referral_engine.events.event_bus import eventBus, EngineEvents
from referral_engine.exceptions import UserNotFound, RewardNotEligible, RewardAlreadyClaimed
from referral_engine.repositories.ledger_repository import LedgerRepository
from referral_engine.repositories.rule_repository import RuleRepository
from referral_engine.repositories.settings_repository import SettingsRepository
from referral_engine.repositories.user_repository import UserRepository
from referral_engine.services.crediter import CommissionCrediter, PayoutInstruction
from referral_engine.utils.time_machine import timeMachine, asUtc

logger = logging.getLogger(__name__)

ONE_TIME_CATEGORIES = (CommissionCategory.TEAM_REWARD, CommissionCategory.TEAM_SIZE_REWARD)

SIGNUP_BONUS_RULE_ID = 0


def claimWindowOpen(rule, now: datetime) -> bool:
    """Team rewards with durationDays > 0 close that many days after the rule was created."""
    days = int(getattr(rule, "durationDays", 0) or 0)
    if days <= 0 or rule.createdAt is None:
        return True
    return asUtc(now) <= asUtc(rule.createdAt) + timedelta(days=days)


def claimKeyFor(category: CommissionCategory, lastClaim) -> str:
    """Salary periods chain on the previous claim; everything else is claimed once."""
    if category != CommissionCategory.SALARY:
        return ONCE
    return f"after:{lastClaim.claimID}" if lastClaim else "first"


class RewardService:
    """Service for listing and claiming rule-based rewards."""

    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)
        self.rules = RuleRepository(session)
        self.settings = SettingsRepository(session)
        self.ledger = LedgerRepository(session)
        self.crediter = CommissionCrediter(session)

    def _getUser(self, email: str) -> User:
        user = self.users.getByEmail(email)
        if not user:
            raise UserNotFound(email)
        return user

    def _teamAndContext(self, user: User):
        allUsers = self.users.getAll()
        levelTable = self.rules.getLevels()

        # Business and member counts are lifetime figures; no earnings window needed
        team = summarizeTree(buildTree(user, allUsers), allUsers, None, {})
        context = UserContext(
            email=user.email,
            level=resolveLevel(user, allUsers, levelTable),
            isActive=user.status == UserStatus.ACTIVE,
        )
        return team, context

    def _rulesFor(self, category: CommissionCategory) -> List:
        if category == CommissionCategory.TEAM_REWARD:
            return self.rules.getTeamRewards()
        if category == CommissionCategory.TEAM_SIZE_REWARD:
            return self.rules.getTeamSizeRewards()
        if category == CommissionCategory.SALARY:
            return self.rules.getSalaryPackages()
        raise ValueError(f"{category.value} is not a reward category")

    @staticmethod
    def _ruleId(rule) -> int:
        return getattr(rule, "packageID", None) or rule.rewardID

    def _evaluate(self, category: CommissionCategory, rule, user: User, context: UserContext,
                  team: TeamSummary, now: datetime) -> Eligibility:
        ruleId = self._ruleId(rule)

        if not context.isActive:
            return Eligibility(False, conditions={"userActive": False})

        if category in ONE_TIME_CATEGORIES and self.ledger.getLastClaim(user, category.value, ruleId):
            return Eligibility(False, conditions={"notClaimed": False})

        if category == CommissionCategory.TEAM_REWARD:
            if not claimWindowOpen(rule, now):
                return Eligibility(False, conditions={"claimWindow": False})
            return evaluateTeamReward(rule, context, team)

        if category == CommissionCategory.TEAM_SIZE_REWARD:
            return evaluateTeamSizeReward(rule, context, team)

        lastClaim = self.ledger.getLastClaim(user, category.value, ruleId)
        return evaluateSalaryPackage(rule, context, team, lastClaim.claimedAt if lastClaim else None, now)

    def _evaluateSignupBonus(self, user: User) -> Eligibility:
        if self.ledger.getLastClaim(user, CommissionCategory.SIGNUP_BONUS.value, SIGNUP_BONUS_RULE_ID):
            return Eligibility(False, conditions={"notClaimed": False})

        context = UserContext(email=user.email, level=0, isActive=user.status == UserStatus.ACTIVE)
        return evaluateSignupBonus(
            self.settings.getBonusSettings()[BONUS_SIGNUP],
            self.rules.getBonusTiers(BONUS_SIGNUP),
            context,
            user.firstDepositAmount,
        )

    def _evaluateReferralBonus(self, user: User, referral: User, claimedIds) -> Eligibility:
        if referral.userID in claimedIds:
            return Eligibility(False, conditions={"notClaimed": False})

        return evaluateReferralBonus(
            self.settings.getBonusSettings()[BONUS_REFERRAL],
            self.rules.getBonusTiers(BONUS_REFERRAL),
            referral,
        )

    async def listEligibleRewards(self, email: str, now: Optional[datetime] = None) -> List[Dict]:
        """Every enabled reward rule and bonus with its eligibility for this user."""
        now = now or timeMachine.now
        user = self._getUser(email)
        team, context = self._teamAndContext(user)

        rewards = []
        for category in (CommissionCategory.TEAM_REWARD, CommissionCategory.TEAM_SIZE_REWARD,
                         CommissionCategory.SALARY):
            for rule in self._rulesFor(category):
                eligibility = self._evaluate(category, rule, user, context, team, now)
                rewards.append(self._listing(category, self._ruleId(rule),
                                             getattr(rule, "title", None) or getattr(rule, "name", None),
                                             eligibility))

        rewards.append(self._listing(CommissionCategory.SIGNUP_BONUS, SIGNUP_BONUS_RULE_ID, "Sign-up bonus",
                                     self._evaluateSignupBonus(user)))

        claimedIds = self.ledger.getClaimedRuleIds(user, CommissionCategory.REFERRAL_BONUS.value)
        for referral in self.users.getDirectReferrals(user):
            rewards.append(self._listing(CommissionCategory.REFERRAL_BONUS, referral.userID, referral.email,
                                         self._evaluateReferralBonus(user, referral, claimedIds)))

        return rewards

    @staticmethod
    def _listing(category: CommissionCategory, ruleId: int, title: str, eligibility: Eligibility) -> Dict:
        return {
            "category": category.value,
            "ruleId": ruleId,
            "title": title,
            "eligible": eligibility.eligible,
            "amount": eligibility.amount,
            "conditions": eligibility.conditions,
        }

    async def _payout(self, email: str, category: CommissionCategory, ruleId: int, eligibility: Eligibility,
                      description: str, claimKey: str, now: datetime) -> Dict:
        if eligibility.conditions.get("notClaimed") is False:
            logger.warning(f"{email} already claimed {category.value} #{ruleId}")
            raise RewardAlreadyClaimed(category.value, ruleId)

        if not eligibility.eligible:
            logger.warning(f"{email} not eligible for {category.value} #{ruleId}: {eligibility.failedCondition}")
            raise RewardNotEligible(category.value, ruleId, eligibility.conditions)

        credit = await self.crediter.credit(PayoutInstruction(
            targetEmail=email,
            category=category,
            amount=eligibility.amount,
            description=description,
            ruleId=ruleId,
            claimKey=claimKey,
        ), now)

        if credit.credited:
            logger.info(f"{email} claimed {category.value} #{ruleId} for {credit.amount}")
            await eventBus.emit(EngineEvents.REWARD_CLAIMED, {
                "email": email,
                "category": category.value,
                "ruleId": ruleId,
                "amount": credit.amount,
            })

        return {
            "success": credit.credited,
            "email": email,
            "category": category.value,
            "ruleId": ruleId,
            "amount": credit.amount,
            "reason": credit.reason,
        }

    async def _claim(self, email: str, category: CommissionCategory, ruleId: int,
                     now: Optional[datetime]) -> Dict:
        now = now or timeMachine.now
        user = self._getUser(email)

        rule = next((r for r in self._rulesFor(category) if self._ruleId(r) == ruleId), None)
        if rule is None:
            raise RewardNotEligible(category.value, ruleId, {"enabled": False})

        team, context = self._teamAndContext(user)
        eligibility = self._evaluate(category, rule, user, context, team, now)
        claimKey = claimKeyFor(category, self.ledger.getLastClaim(user, category.value, ruleId))

        title = getattr(rule, "title", None) or getattr(rule, "name", None) or f"#{ruleId}"
        description = f"{category.value.replace('_', ' ').capitalize()}: {title}"
        return await self._payout(email, category, ruleId, eligibility, description, claimKey, now)

    async def claimTeamReward(self, email: str, rewardId: int, now: Optional[datetime] = None) -> Dict:
        return await self._claim(email, CommissionCategory.TEAM_REWARD, rewardId, now)

    async def claimTeamSizeReward(self, email: str, rewardId: int, now: Optional[datetime] = None) -> Dict:
        return await self._claim(email, CommissionCategory.TEAM_SIZE_REWARD, rewardId, now)

    async def claimSalary(self, email: str, packageId: int, now: Optional[datetime] = None) -> Dict:
        return await self._claim(email, CommissionCategory.SALARY, packageId, now)

    async def claimSignupBonus(self, email: str, now: Optional[datetime] = None) -> Dict:
        """One-time bonus banded by the user's own first deposit."""
        now = now or timeMachine.now
        user = self._getUser(email)
        return await self._payout(email, CommissionCategory.SIGNUP_BONUS, SIGNUP_BONUS_RULE_ID,
                                  self._evaluateSignupBonus(user), "Sign-up bonus", ONCE, now)

    async def claimReferralBonus(self, email: str, referralEmail: str, now: Optional[datetime] = None) -> Dict:
        """Bonus for one direct referral, banded by that referral's first deposit."""
        now = now or timeMachine.now
        user = self._getUser(email)
        referral = self.users.getByEmail(referralEmail)
        if (referral is None or referral.userID == user.userID or not user.referralCode
                or referral.referredBy != user.referralCode):
            raise RewardNotEligible(CommissionCategory.REFERRAL_BONUS.value,
                                    referral.userID if referral else 0, {"directReferral": False})

        claimedIds = self.ledger.getClaimedRuleIds(user, CommissionCategory.REFERRAL_BONUS.value)
        return await self._payout(email, CommissionCategory.REFERRAL_BONUS, referral.userID,
                                  self._evaluateReferralBonus(user, referral, claimedIds),
                                  f"Referral bonus: {referral.email}", ONCE, now)
