# referral_engine/repositories/ledger_repository.py
"""
Balance and activity store: sub-balances, task log, activity log,
commission checkpoints and reward claims, all keyed by user.
"""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Set
from sqlalchemy.orm import Session
import logging

from models import User, CompletedTask, Activity, CommissionCheckpoint, RewardClaim
from models.rewards.reward_claim import ONCE
from referral_engine.exceptions import UserNotFound
from referral_engine.utils.money import toDecimal

logger = logging.getLogger(__name__)

BALANCE_FIELDS = ("balanceMain", "balanceTask", "balanceInterest")


class LedgerRepository:

    def __init__(self, session: Session):
        self.session = session

    def _user(self, email: str) -> User:
        user = self.session.query(User).filter_by(email=email).first()
        if not user:
            raise UserNotFound(email)
        return user

    # === Balances ===

    def getUserBalances(self, email: str) -> Dict[str, Decimal]:
        user = self._user(email)
        return {name: toDecimal(getattr(user, name)) for name in BALANCE_FIELDS}

    def setUserBalances(self, email: str, patch: Dict[str, Decimal]):
        """Overwrite the given sub-balances; unknown keys are rejected."""
        unknown = set(patch) - set(BALANCE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown balance fields: {sorted(unknown)}")

        user = self._user(email)
        for name, value in patch.items():
            setattr(user, name, toDecimal(value))

    def applyCredit(self, user: User, amount: Decimal):
        """Add to the spendable balance as a SQL-side increment."""
        user.balanceMain = User.balanceMain + amount

    def appendActivity(self, user: User, category: str, amount: Decimal,
                       description: str, at: Optional[datetime] = None) -> Activity:
        activity = Activity(
            userID=user.userID,
            category=category,
            amount=amount,
            description=description,
            ownerEmail=user.email,
        )
        if at is not None:
            activity.createdAt = at
        self.session.add(activity)
        self.session.flush()
        return activity

    def getActivities(self, email: str) -> List[Activity]:
        user = self._user(email)
        return self.session.query(Activity).filter_by(userID=user.userID).order_by(
            Activity.createdAt.desc(), Activity.activityID.desc()
        ).all()

    # === Task log ===

    def addCompletedTask(self, user: User, title: str, earnings: Decimal, at: datetime) -> CompletedTask:
        task = CompletedTask(userID=user.userID, title=title, earnings=earnings, completedAt=at)
        self.session.add(task)
        self.session.flush()
        return task

    def countTasksSince(self, user: User, since: datetime) -> int:
        return self.session.query(CompletedTask).filter(
            CompletedTask.userID == user.userID,
            CompletedTask.completedAt >= since
        ).count()

    def getTaskLog(self, since: Optional[datetime] = None,
                   until: Optional[datetime] = None) -> Dict[str, List[CompletedTask]]:
        """Completed tasks grouped by user email, within [since, until) when given."""
        query = self.session.query(User.email, CompletedTask).join(
            CompletedTask, CompletedTask.userID == User.userID
        )
        if since is not None:
            query = query.filter(CompletedTask.completedAt >= since)
        if until is not None:
            query = query.filter(CompletedTask.completedAt < until)

        log = defaultdict(list)
        for email, task in query.order_by(CompletedTask.completedAt).all():
            log[email].append(task)
        return log

    # === Checkpoints ===

    def getCheckpoint(self, user: User, category: str, forUpdate: bool = False) -> Optional[CommissionCheckpoint]:
        query = self.session.query(CommissionCheckpoint).filter_by(userID=user.userID, category=category)
        if forUpdate:
            query = query.with_for_update()
        return query.first()

    def getOrCreateCheckpoint(self, user: User, category: str) -> CommissionCheckpoint:
        checkpoint = self.getCheckpoint(user, category, forUpdate=True)
        if checkpoint is None:
            checkpoint = CommissionCheckpoint(userID=user.userID, category=category,
                                              lastCreditedAt=None, version=0)
            self.session.add(checkpoint)
            self.session.flush()
        return checkpoint

    def advanceCheckpoint(self, checkpoint: CommissionCheckpoint, at: datetime) -> bool:
        """
        Move the checkpoint to `at` only if nobody advanced it since it was read.
        Returns False when the version check fails.
        """
        updated = self.session.query(CommissionCheckpoint).filter(
            CommissionCheckpoint.checkpointID == checkpoint.checkpointID,
            CommissionCheckpoint.version == checkpoint.version
        ).update(
            {
                CommissionCheckpoint.lastCreditedAt: at,
                CommissionCheckpoint.version: CommissionCheckpoint.version + 1,
            },
            synchronize_session="fetch"
        )
        return updated == 1

    # === Reward claims ===

    def addClaim(self, user: User, ruleType: str, ruleId: int, amount: Decimal, at: datetime,
                 claimKey: str = ONCE) -> RewardClaim:
        claim = RewardClaim(userID=user.userID, ruleType=ruleType, ruleID=ruleId, claimKey=claimKey,
                            amount=amount, claimedAt=at)
        self.session.add(claim)
        self.session.flush()
        return claim

    def findClaim(self, user: User, ruleType: str, ruleId: int, claimKey: str) -> Optional[RewardClaim]:
        return self.session.query(RewardClaim).filter_by(
            userID=user.userID, ruleType=ruleType, ruleID=ruleId, claimKey=claimKey
        ).first()

    def getLastClaim(self, user: User, ruleType: str, ruleId: int) -> Optional[RewardClaim]:
        return self.session.query(RewardClaim).filter_by(
            userID=user.userID, ruleType=ruleType, ruleID=ruleId
        ).order_by(RewardClaim.claimedAt.desc(), RewardClaim.claimID.desc()).first()

    def getClaimedRuleIds(self, user: User, ruleType: str) -> Set[int]:
        rows = self.session.query(RewardClaim.ruleID).filter_by(userID=user.userID, ruleType=ruleType).all()
        return {ruleId for (ruleId,) in rows}
