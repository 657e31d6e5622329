"""Builders for transient users and task log entries."""

from datetime import datetime, timezone
from decimal import Decimal

from models import User, CompletedTask

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def makeUser(email, code=None, referredBy=None, status="active", task="0", interest="0", main="0",
             overrideLevel=None, purchased=0, activatedAt=None, createdAt=None):
    """Transient user for the pure engine functions."""
    user = User(
        email=email,
        referralCode=code or email.split("@")[0].upper(),
        referredBy=referredBy,
        status=status,
        balanceMain=Decimal(main),
        balanceTask=Decimal(task),
        balanceInterest=Decimal(interest),
        overrideLevel=overrideLevel,
        purchasedReferrals=purchased,
        activatedAt=activatedAt,
        level=0,
    )
    if createdAt is not None:
        user.createdAt = createdAt
    return user


def makeTask(earnings, completedAt, title="task"):
    return CompletedTask(title=title, earnings=Decimal(str(earnings)), completedAt=completedAt)
