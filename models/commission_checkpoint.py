# models/commission_checkpoint.py
"""
CommissionCheckpoint model - end of the last paid earnings window per user and category.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from models.base import Base


class CommissionCheckpoint(Base):
    __tablename__ = 'commission_checkpoints'

    checkpointID = Column(Integer, primary_key=True, autoincrement=True)
    userID = Column(Integer, ForeignKey('users.userID'), nullable=False)
    category = Column(String, nullable=False)  # team, community, upline

    lastCreditedAt = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=0)  # bumped on every advance

    user = relationship('User', backref='commission_checkpoints')

    __table_args__ = (
        UniqueConstraint('userID', 'category', name='_checkpoint_user_category_uc'),
    )

    def __repr__(self):
        return f"<CommissionCheckpoint(user={self.userID}, {self.category}, at={self.lastCreditedAt}, v={self.version})>"
