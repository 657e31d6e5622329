# models/user.py
"""
User model - identity, referral-graph node and wallet balances.
"""
import secrets
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean, DateTime, Text
from datetime import datetime, timezone
from decimal import Decimal
from models.base import Base


class User(Base):
    __tablename__ = 'users'

    # Primary identification
    userID = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    createdAt = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Referral graph
    referralCode = Column(String, unique=True, nullable=False, index=True)
    referredBy = Column(String, nullable=True, index=True)  # referralCode of the sponsor
    purchasedReferrals = Column(Integer, default=0)  # bought referral credits, count toward tier only

    # Account state
    status = Column(String, default="inactive", index=True)  # active, inactive, disabled
    isAccountActive = Column(Boolean, default=False)
    activatedAt = Column(DateTime(timezone=True), nullable=True)
    overrideLevel = Column(Integer, nullable=True)  # manual tier, 0 is a valid override
    level = Column(Integer, default=0)  # last synced effective tier, display cache only

    # Balances
    balanceMain = Column(DECIMAL(14, 4), default=0)  # freely spendable
    balanceTask = Column(DECIMAL(14, 4), default=0)  # ring-fenced: task rewards
    balanceInterest = Column(DECIMAL(14, 4), default=0)  # ring-fenced: interest earnings
    taskRewardsEarned = Column(DECIMAL(14, 6), default=0)  # lifetime task earnings

    # Deposit statistics
    firstDepositAt = Column(DateTime(timezone=True), nullable=True)
    firstDepositAmount = Column(DECIMAL(14, 4), nullable=True)  # picks the signup and referral bonus tier
    depositsCount = Column(Integer, default=0)
    withdrawalsCount = Column(Integer, default=0)

    notes = Column(Text, nullable=True)  # admin notes only

    @classmethod
    def create(cls, session, email, referredBy=None, name=None):
        """
        Creates a new user, or returns the existing one with this email.
        A unique referral code is generated for every new account.
        """
        user = session.query(cls).filter_by(email=email).first()
        if not user:
            code = cls.generateReferralCode()
            while session.query(cls).filter_by(referralCode=code).first() is not None:
                code = cls.generateReferralCode()

            user = cls(
                email=email,
                name=name,
                referralCode=code,
                referredBy=referredBy or None,
                status="inactive",
                isAccountActive=False,
                purchasedReferrals=0,
                level=0,
                balanceMain=Decimal("0"),
                balanceTask=Decimal("0"),
                balanceInterest=Decimal("0"),
            )
            session.add(user)
            session.flush()
        return user

    @staticmethod
    def generateReferralCode() -> str:
        return secrets.token_hex(4).upper()

    # === Derived balances ===
    @property
    def totalHoldings(self) -> Decimal:
        """Main + task + interest, used as the 'deposits' figure of a team member."""
        return sum((Decimal(str(value or 0)) for value in (self.balanceMain, self.balanceTask, self.balanceInterest)),
                   Decimal("0"))

    def __repr__(self):
        return f"<User(userID={self.userID}, email={self.email}, status={self.status})>"
