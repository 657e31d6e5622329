# referral_engine/services/commission_service.py
"""
Commission evaluation service - the scheduled trigger for team, community
and upline commissions.

Each category has its own checkpoint. A category is evaluated at most once
per platform day: read checkpoint, aggregate the window since it, evaluate,
credit and advance the checkpoint in one transaction.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
import logging

from models import User
from referral_engine.config.levels import CommissionCategory, CHECKPOINTED_CATEGORIES, UserStatus
from referral_engine.core.aggregator import summarizeTree, earningsSince
from referral_engine.core.downline import buildTree, findUpline
from referral_engine.core.eligibility import (
    RuleSet, UserContext, TeamCommissionSettings, UplineCommissionSettings,
    evaluateTeamCommission, evaluateCommunityCommission, evaluateUplineCommission,
)
from referral_engine.core.level_resolver import resolveLevels
from referral_engine.exceptions import UserNotFound, StaleCheckpointError
from referral_engine.repositories.ledger_repository import LedgerRepository
from referral_engine.repositories.rule_repository import RuleRepository
from referral_engine.repositories.settings_repository import SettingsRepository
from referral_engine.repositories.user_repository import UserRepository
from referral_engine.services.crediter import CommissionCrediter, PayoutInstruction
from referral_engine.utils.money import ZERO
from referral_engine.utils.time_machine import timeMachine, isCreditDue

logger = logging.getLogger(__name__)


@dataclass
class EngineSnapshot:
    """Everything one evaluation pass reads, loaded once."""
    allUsers: List[User]
    levelTable: List
    levels: Dict[str, int]
    rules: RuleSet
    teamCommission: TeamCommissionSettings
    uplineCommission: UplineCommissionSettings
    schedule: Dict[str, str]


class CommissionService:
    """Service for evaluating and crediting windowed commissions."""

    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)
        self.rules = RuleRepository(session)
        self.settings = SettingsRepository(session)
        self.ledger = LedgerRepository(session)
        self.crediter = CommissionCrediter(session)

    def loadSnapshot(self) -> EngineSnapshot:
        allUsers = self.users.getAll()
        levelTable = self.rules.getLevels()
        return EngineSnapshot(
            allUsers=allUsers,
            levelTable=levelTable,
            levels=resolveLevels(allUsers, levelTable),
            rules=self.rules.getRuleSet(),
            teamCommission=self.settings.getTeamCommission(),
            uplineCommission=self.settings.getUplineCommission(),
            schedule=self.settings.getSchedule(),
        )

    async def evaluateUser(self, email: str, now: Optional[datetime] = None,
                           snapshot: Optional[EngineSnapshot] = None) -> Dict:
        """
        Evaluate and credit every due commission category for one user.
        Main entry point for the daily scheduler and on-demand checks.
        """
        now = now or timeMachine.now
        user = self.users.getByEmail(email)
        if not user:
            raise UserNotFound(email)

        results = {
            "success": True,
            "email": email,
            "credits": [],
            "skipped": {},
            "totalCredited": Decimal("0")
        }

        if user.status != UserStatus.ACTIVE:
            for category in CHECKPOINTED_CATEGORIES:
                results["skipped"][category.value] = "inactive"
            return results

        snapshot = snapshot or self.loadSnapshot()

        for category in CHECKPOINTED_CATEGORIES:
            checkpoint = self.ledger.getCheckpoint(user, category.value)
            windowStart = checkpoint.lastCreditedAt if checkpoint else None
            version = checkpoint.version if checkpoint else 0

            if not isCreditDue(windowStart, now, snapshot.schedule["resetTime"], snapshot.schedule["timezone"]):
                results["skipped"][category.value] = "not_due"
                continue

            instructions = self._buildInstructions(user, category, snapshot, windowStart, version, now)

            try:
                credit = await self.crediter.creditBatch(instructions, now)
            except StaleCheckpointError as e:
                logger.warning(f"Skipping {category.value} for {email}: {e}")
                results["skipped"][category.value] = "stale_checkpoint"
                continue

            if not credit.credited:
                results["skipped"][category.value] = credit.reason
                continue

            results["credits"].append({
                "category": category.value,
                "amount": credit.amount,
                "windowStart": windowStart,
                "activityIds": credit.activityIds,
            })
            results["totalCredited"] += credit.amount

        if results["credits"]:
            logger.info(
                f"Evaluated {email}: {len(results['credits'])} credits, "
                f"total {results['totalCredited']}"
            )

        return results

    def _buildInstructions(
            self,
            user: User,
            category: CommissionCategory,
            snapshot: EngineSnapshot,
            windowStart: Optional[datetime],
            version: int,
            now: datetime
    ) -> List[PayoutInstruction]:
        """Aggregate the window [windowStart, now) and turn eligible results into payouts."""
        taskLog = self.ledger.getTaskLog(since=windowStart, until=now)
        tree = buildTree(user, snapshot.allUsers)
        team = summarizeTree(tree, snapshot.allUsers, windowStart, taskLog)
        upline = findUpline(user, snapshot.allUsers)

        context = UserContext(
            email=user.email,
            level=snapshot.levels.get(user.email, 0),
            isActive=user.status == UserStatus.ACTIVE,
            hasUpline=upline is not None,
        )

        def instruction(amount, description, ruleId=None):
            return PayoutInstruction(
                targetEmail=user.email,
                category=category,
                amount=amount,
                description=description,
                windowStart=windowStart,
                expectedVersion=version,
                ruleId=ruleId,
            )

        if category == CommissionCategory.TEAM:
            eligibility = evaluateTeamCommission(snapshot.teamCommission, context, team)
            if not eligibility.eligible:
                return []
            return [instruction(eligibility.amount, "Team commission from L1-L3 task earnings")]

        if category == CommissionCategory.COMMUNITY:
            instructions = []
            for rule in snapshot.rules.enabledOnly().communityRules:
                eligibility = evaluateCommunityCommission(rule, context, team)
                if eligibility.eligible:
                    instructions.append(instruction(
                        eligibility.amount,
                        f"Community commission ({rule.name or rule.ruleID})",
                        rule.ruleID,
                    ))
            return instructions

        if category == CommissionCategory.UPLINE:
            uplineEarnings = ZERO
            if upline is not None and upline.status == UserStatus.ACTIVE:
                uplineEarnings = earningsSince(taskLog.get(upline.email, ()), windowStart)
            eligibility = evaluateUplineCommission(snapshot.uplineCommission, context, team, uplineEarnings)
            if not eligibility.eligible:
                return []
            return [instruction(eligibility.amount, f"Upline commission from {upline.email}")]

        return []

    async def evaluateAll(self, now: Optional[datetime] = None) -> Dict:
        """Evaluate every user; one user's failure never stops the pass."""
        now = now or timeMachine.now
        results = {
            "checked": 0,
            "credited": 0,
            "errors": 0,
            "totalCredited": Decimal("0")
        }

        snapshot = self.loadSnapshot()
        emails = [user.email for user in snapshot.allUsers]

        for email in emails:
            try:
                results["checked"] += 1
                userResult = await self.evaluateUser(email, now, snapshot)
                if userResult["credits"]:
                    results["credited"] += 1
                    results["totalCredited"] += userResult["totalCredited"]
            except Exception as e:
                logger.error(f"Error evaluating commissions for {email}: {e}")
                self.session.rollback()
                results["errors"] += 1

        logger.info(
            f"Commission pass complete: checked={results['checked']}, "
            f"credited={results['credited']}, errors={results['errors']}, "
            f"total={results['totalCredited']}"
        )

        return results
