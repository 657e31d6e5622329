# models/level_history.py
"""
LevelHistory model - tracks level changes and manual overrides.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from models.base import Base


class LevelHistory(Base):
    __tablename__ = 'level_history'

    historyID = Column(Integer, primary_key=True, autoincrement=True)
    createdAt = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    userID = Column(Integer, ForeignKey('users.userID'), nullable=False)

    previousLevel = Column(Integer, nullable=True)
    newLevel = Column(Integer, nullable=True)  # None when an override is cleared

    # Qualification metrics at time of change
    committedBalance = Column(DECIMAL(14, 4), nullable=True)
    directReferrals = Column(Integer, nullable=True)
    method = Column(String, nullable=True)  # natural, assigned, cleared

    assignedBy = Column(String, nullable=True)  # admin email
    notes = Column(Text, nullable=True)

    user = relationship('User', backref='level_history')

    def __repr__(self):
        return f"<LevelHistory(user={self.userID}, {self.previousLevel}->{self.newLevel}, {self.method})>"
