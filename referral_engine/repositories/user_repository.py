# referral_engine/repositories/user_repository.py
"""
User directory - full-population snapshots and lookups.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from models import User


class UserRepository:

    def __init__(self, session: Session):
        self.session = session

    def getByEmail(self, email: str) -> Optional[User]:
        return self.session.query(User).filter_by(email=email).first()

    def getDirectReferrals(self, user: User) -> List[User]:
        """Users who signed up with this user's referral code."""
        if not user.referralCode:
            return []
        return self.session.query(User).filter(
            User.referredBy == user.referralCode,
            User.userID != user.userID
        ).order_by(User.userID).all()

    def getAll(self) -> List[User]:
        """Snapshot of every user in a stable order."""
        return self.session.query(User).order_by(User.userID).all()
