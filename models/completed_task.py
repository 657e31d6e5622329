# models/completed_task.py
"""
CompletedTask model - per-user log of task completions and their earnings.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from models.base import Base


class CompletedTask(Base):
    __tablename__ = 'completed_tasks'

    taskID = Column(Integer, primary_key=True, autoincrement=True)
    userID = Column(Integer, ForeignKey('users.userID'), nullable=False, index=True)

    title = Column(String, nullable=True)
    earnings = Column(DECIMAL(14, 6), nullable=False, default=0)
    completedAt = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    user = relationship('User', backref='completed_tasks')

    def __repr__(self):
        return f"<CompletedTask(taskID={self.taskID}, user={self.userID}, earnings={self.earnings})>"
