# models/rewards/team_size_reward.py
"""
TeamSizeReward model - flat bonus for reaching a number of active team members.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean
from models.base import Base, AuditMixin


class TeamSizeReward(Base, AuditMixin):
    __tablename__ = 'team_size_rewards'

    rewardID = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)

    requiredActiveMembers = Column(Integer, nullable=False)
    rewardAmount = Column(DECIMAL(14, 2), nullable=False)
    level = Column(Integer, default=0)  # 0 = all levels
    userEmail = Column(String, nullable=True)  # set = only this user qualifies

    enabled = Column(Boolean, default=True)

    def __repr__(self):
        return f"<TeamSizeReward(rewardID={self.rewardID}, title={self.title}, members={self.requiredActiveMembers})>"
