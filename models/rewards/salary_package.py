# models/rewards/salary_package.py
"""
SalaryPackage model - recurring bonus claimable once per period.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean
from models.base import Base, AuditMixin


class SalaryPackage(Base, AuditMixin):
    __tablename__ = 'salary_packages'

    packageID = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)

    level = Column(Integer, default=0)  # 0 = all levels
    userEmail = Column(String, nullable=True)  # empty = every user at the level
    amount = Column(DECIMAL(14, 2), nullable=False)
    periodDays = Column(Integer, nullable=False, default=30)

    requiredTeamBusiness = Column(DECIMAL(14, 2), default=0)
    requiredActiveReferrals = Column(Integer, default=0)

    enabled = Column(Boolean, default=True)

    def __repr__(self):
        return f"<SalaryPackage(packageID={self.packageID}, name={self.name}, amount={self.amount})>"
