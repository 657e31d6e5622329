# referral_engine/services/crediter.py
"""
Commission crediter - applies payout instructions to the wallet ledger.

Checkpointed categories (team, community, upline) are credited together with
the checkpoint advance in one transaction; the advance is guarded by the
checkpoint version read when the window was aggregated. Claim categories
record a RewardClaim instead, keyed by the period it pays for; a key that is
already claimed is refused under the user lock and again by the unique
constraint on reward_claims.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from models import User
from models.rewards.reward_claim import ONCE
from referral_engine.config.levels import CommissionCategory, CHECKPOINTED_CATEGORIES, CLAIM_CATEGORIES
from referral_engine.events.event_bus import eventBus, EngineEvents
from referral_engine.exceptions import UserNotFound, StaleCheckpointError, RewardAlreadyClaimed
from referral_engine.repositories.ledger_repository import LedgerRepository
from referral_engine.utils.money import ZERO, roundMoney
from referral_engine.utils.time_machine import asUtc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayoutInstruction:
    targetEmail: str
    category: CommissionCategory
    amount: Decimal
    description: str
    windowStart: Optional[datetime] = None  # checkpoint value the amount was aggregated from
    expectedVersion: Optional[int] = None
    ruleId: Optional[int] = None
    claimKey: str = ONCE  # claim categories: the period this payout settles


@dataclass
class CreditResult:
    credited: bool
    amount: Decimal = ZERO
    reason: str = ""
    activityIds: List[int] = field(default_factory=list)


class CommissionCrediter:
    """Applies payouts; never mutates balances outside a credit transaction."""

    def __init__(self, session: Session):
        self.session = session
        self.ledger = LedgerRepository(session)

    async def credit(self, instruction: PayoutInstruction, now: datetime) -> CreditResult:
        return await self.creditBatch([instruction], now)

    async def creditBatch(self, instructions: Sequence[PayoutInstruction], now: datetime) -> CreditResult:
        """
        Credit several instructions for one user and category as a single unit.

        Non-positive amounts are dropped; when nothing positive is left the call
        is a no-op and the checkpoint stays where it was. Raises
        StaleCheckpointError if the checkpoint moved since the window was read,
        and RewardAlreadyClaimed if a claim with the same key exists.
        """
        if not instructions:
            return CreditResult(False, reason="no_instructions")

        first = instructions[0]
        for instruction in instructions:
            if instruction.targetEmail != first.targetEmail or instruction.category != first.category:
                raise ValueError("A credit batch must target a single user and category")

        payable = [i for i in instructions if roundMoney(i.amount) > 0]
        if not payable:
            return CreditResult(False, reason="non_positive_amount")

        category = first.category
        try:
            user = self.session.query(User).filter_by(email=first.targetEmail).with_for_update().first()
            if not user:
                raise UserNotFound(first.targetEmail)

            if category in CHECKPOINTED_CATEGORIES:
                self._advanceCheckpoint(user, first, now)

            total = ZERO
            activityIds = []
            for instruction in payable:
                if category in CLAIM_CATEGORIES:
                    self._ensureUnclaimed(user, instruction)

                amount = roundMoney(instruction.amount)
                self.ledger.applyCredit(user, amount)
                activity = self.ledger.appendActivity(
                    user, category.value, amount, instruction.description, at=now
                )
                activityIds.append(activity.activityID)

                if category in CLAIM_CATEGORIES:
                    self.ledger.addClaim(user, category.value, instruction.ruleId, amount, now,
                                         claimKey=instruction.claimKey)

                total += amount

            self.session.commit()

        except IntegrityError:
            self.session.rollback()
            if category in CHECKPOINTED_CATEGORIES:
                # concurrent first credit created the same checkpoint row
                raise StaleCheckpointError(first.targetEmail, category.value)
            if category in CLAIM_CATEGORIES:
                logger.warning(f"Concurrent {category.value} #{first.ruleId} claim for {first.targetEmail} refused")
                raise RewardAlreadyClaimed(category.value, first.ruleId)
            raise
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Credited {total} ({category.value}) to {first.targetEmail} in {len(payable)} entries")

        await eventBus.emit(EngineEvents.COMMISSION_CREDITED, {
            "email": first.targetEmail,
            "category": category.value,
            "amount": total,
            "activityIds": activityIds,
            "creditedAt": now,
        })

        return CreditResult(True, total, activityIds=activityIds)

    def _advanceCheckpoint(self, user: User, instruction: PayoutInstruction, now: datetime):
        category = instruction.category.value
        checkpoint = self.ledger.getOrCreateCheckpoint(user, category)

        if asUtc(checkpoint.lastCreditedAt) != asUtc(instruction.windowStart):
            logger.warning(f"Checkpoint for {user.email}/{category} moved past {instruction.windowStart}")
            raise StaleCheckpointError(user.email, category)

        if instruction.expectedVersion is not None and checkpoint.version != instruction.expectedVersion:
            logger.warning(f"Checkpoint for {user.email}/{category} is at version {checkpoint.version}, "
                           f"expected {instruction.expectedVersion}")
            raise StaleCheckpointError(user.email, category)

        if not self.ledger.advanceCheckpoint(checkpoint, now):
            raise StaleCheckpointError(user.email, category)

    def _ensureUnclaimed(self, user: User, instruction: PayoutInstruction):
        category = instruction.category.value
        if self.ledger.findClaim(user, category, instruction.ruleId, instruction.claimKey):
            logger.warning(f"{user.email} already holds {category} #{instruction.ruleId} ({instruction.claimKey})")
            raise RewardAlreadyClaimed(category, instruction.ruleId)
