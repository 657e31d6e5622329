# models/level.py
"""
Level model - tier definitions editable from the admin console.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean
from models.base import Base


class Level(Base):
    __tablename__ = 'levels'

    level = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)

    # Unlock thresholds (both must be met)
    minAmount = Column(DECIMAL(14, 2), default=0)  # committed balance
    referrals = Column(Integer, default=0)  # direct referrals

    # Yield and tasks
    rate = Column(DECIMAL(6, 2), default=0)  # yearly %, daily yield = rate / 100 / 365
    dailyTasks = Column(Integer, default=0)
    earningPerTask = Column(DECIMAL(10, 4), default=0)

    # Withdrawal rules
    monthlyWithdrawals = Column(Integer, default=0)
    minWithdrawal = Column(DECIMAL(14, 2), default=0)
    maxWithdrawal = Column(DECIMAL(14, 2), nullable=True)  # None = no cap
    withdrawalFee = Column(DECIMAL(5, 2), default=0)  # %

    enabled = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Level(level={self.level}, name={self.name}, minAmount={self.minAmount})>"
