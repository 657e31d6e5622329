# models/rewards/reward_claim.py
"""
RewardClaim model - one row per paid reward or bonus.

claimKey names the period a claim pays for: "once" for one-time rewards,
the predecessor claim for salary packages. A (user, rule, key) triple is
paid at most once.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from models.base import Base

ONCE = "once"


class RewardClaim(Base):
    __tablename__ = 'reward_claims'

    claimID = Column(Integer, primary_key=True, autoincrement=True)
    userID = Column(Integer, ForeignKey('users.userID'), nullable=False)

    ruleType = Column(String, nullable=False)  # team_reward, team_size_reward, salary, signup_bonus, referral_bonus
    ruleID = Column(Integer, nullable=False)  # referral's userID for referral bonuses, 0 for the signup bonus
    claimKey = Column(String, nullable=False, default=ONCE)
    amount = Column(DECIMAL(14, 2), nullable=False)
    claimedAt = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    user = relationship('User', backref='reward_claims')

    __table_args__ = (
        Index('ix_reward_claims_user_rule', 'userID', 'ruleType', 'ruleID'),
        UniqueConstraint('userID', 'ruleType', 'ruleID', 'claimKey', name='uq_reward_claims_key'),
    )

    def __repr__(self):
        return f"<RewardClaim(user={self.userID}, {self.ruleType}#{self.ruleID}/{self.claimKey}, amount={self.amount})>"
