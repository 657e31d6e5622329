# models/rewards/team_reward.py
"""
TeamReward model - flat bonus for reaching a team business volume.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean, Text
from models.base import Base, AuditMixin


class TeamReward(Base, AuditMixin):
    __tablename__ = 'team_rewards'

    rewardID = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    level = Column(Integer, default=0)  # 0 = all levels
    requiredAmount = Column(DECIMAL(14, 2), nullable=False)  # L1-L3 total business
    durationDays = Column(Integer, default=0)  # claim window from createdAt, 0 = open-ended
    rewardAmount = Column(DECIMAL(14, 2), nullable=False)

    enabled = Column(Boolean, default=True)

    def __repr__(self):
        return f"<TeamReward(rewardID={self.rewardID}, title={self.title}, required={self.requiredAmount})>"
