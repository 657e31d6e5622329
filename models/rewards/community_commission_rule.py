# models/rewards/community_commission_rule.py
"""
CommunityCommissionRule model - percentage of L4+ earnings for qualified leaders.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean
from models.base import Base, AuditMixin


class CommunityCommissionRule(Base, AuditMixin):
    __tablename__ = 'community_commission_rules'

    ruleID = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)

    commissionRate = Column(DECIMAL(6, 2), nullable=False)  # %
    requiredLevel = Column(Integer, default=0)
    requiredDirectReferrals = Column(Integer, default=0)  # active L1
    requiredTeamSize = Column(Integer, default=0)  # L1-L3 members

    enabled = Column(Boolean, default=True)

    def __repr__(self):
        return f"<CommunityCommissionRule(ruleID={self.ruleID}, name={self.name}, rate={self.commissionRate})>"
