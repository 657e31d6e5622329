# models/rewards/bonus_tier.py
"""
BonusTier model - deposit-banded signup and referral bonuses.
The highest enabled tier whose minDeposit the first deposit reaches pays.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean
from models.base import Base, AuditMixin


class BonusTier(Base, AuditMixin):
    __tablename__ = 'bonus_tiers'

    tierID = Column(Integer, primary_key=True, autoincrement=True)
    bonusType = Column(String, nullable=False, index=True)  # signup, referral

    minDeposit = Column(DECIMAL(14, 2), nullable=False)
    bonusAmount = Column(DECIMAL(14, 2), nullable=False)

    enabled = Column(Boolean, default=True)

    def __repr__(self):
        return f"<BonusTier({self.bonusType}, min={self.minDeposit}, bonus={self.bonusAmount})>"
