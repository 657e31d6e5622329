# models/activity.py
"""
Activity model - immutable log of every balance credit.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, AuditMixin


class Activity(Base, AuditMixin):
    __tablename__ = 'activities'

    activityID = Column(Integer, primary_key=True, autoincrement=True)
    userID = Column(Integer, ForeignKey('users.userID'), nullable=False, index=True)

    category = Column(String, nullable=False)  # team, community, upline, team_reward, team_size_reward, salary
    amount = Column(DECIMAL(14, 4), nullable=False)
    description = Column(String, nullable=True)

    # Note: createdAt, updatedAt, ownerEmail - from AuditMixin

    user = relationship('User', backref='activities')

    def __repr__(self):
        return f"<Activity(activityID={self.activityID}, user={self.userID}, {self.category}={self.amount})>"
