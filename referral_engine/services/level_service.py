# referral_engine/services/level_service.py
"""
Level management service - keeps persisted tiers, activation state and
level history in line with what the resolver computes.
"""
from typing import Dict, Optional
from sqlalchemy.orm import Session
import logging

import config
from models import User, LevelHistory
from referral_engine.config.levels import UserStatus
from referral_engine.core.level_resolver import (
    resolveLevel, resolveLevels, countDirectReferrals, committedBalanceOf, getLevelDefinition,
)
from referral_engine.events.event_bus import eventBus, EngineEvents
from referral_engine.exceptions import UserNotFound, InvalidOverride
from referral_engine.repositories.rule_repository import RuleRepository
from referral_engine.repositories.user_repository import UserRepository
from referral_engine.utils.time_machine import timeMachine

logger = logging.getLogger(__name__)


class LevelService:
    """Service for resolving and persisting user levels."""

    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)
        self.rules = RuleRepository(session)

    def _getUser(self, email: str) -> User:
        user = self.users.getByEmail(email)
        if not user:
            raise UserNotFound(email)
        return user

    async def getUserLevel(self, email: str) -> Dict:
        """Effective level of a user together with its definition row."""
        user = self._getUser(email)
        levelTable = self.rules.getLevels()
        allUsers = self.users.getAll()

        level = resolveLevel(user, allUsers, levelTable)
        definition = getLevelDefinition(levelTable, level)

        return {
            "email": email,
            "level": level,
            "name": definition.name,
            "isOverride": user.overrideLevel is not None,
            "committedBalance": committedBalanceOf(user),
            "directReferrals": countDirectReferrals(user, allUsers),
        }

    async def syncUser(self, email: str) -> bool:
        """
        Persist the resolved level of one user.
        Returns True if level or activation state changed.
        """
        user = self._getUser(email)
        levelTable = self.rules.getLevels()
        allUsers = self.users.getAll()

        changed = await self._applyLevel(user, resolveLevel(user, allUsers, levelTable), allUsers)
        self.session.commit()
        return changed

    async def _applyLevel(self, user: User, newLevel: int, allUsers) -> bool:
        changed = False
        oldLevel = user.level or 0

        if newLevel != oldLevel:
            user.level = newLevel
            history = LevelHistory(
                userID=user.userID,
                previousLevel=oldLevel,
                newLevel=newLevel,
                committedBalance=committedBalanceOf(user),
                directReferrals=countDirectReferrals(user, allUsers),
                method="assigned" if user.overrideLevel is not None else "natural",
            )
            self.session.add(history)
            changed = True

            logger.info(f"User {user.email} level updated: {oldLevel} -> {newLevel}")
            await eventBus.emit(EngineEvents.LEVEL_CHANGED, {
                "email": user.email,
                "previousLevel": oldLevel,
                "newLevel": newLevel,
            })

        # First qualifying tier activates the account; disabled accounts stay disabled
        if newLevel >= 1 and user.activatedAt is None and user.status != UserStatus.DISABLED:
            user.status = UserStatus.ACTIVE
            user.isAccountActive = True
            user.activatedAt = timeMachine.now
            changed = True

            logger.info(f"User {user.email} activated at level {newLevel}")
            await eventBus.emit(EngineEvents.USER_ACTIVATED, {
                "email": user.email,
                "level": newLevel,
                "activatedAt": user.activatedAt,
            })

        return changed

    async def syncAllUsers(self) -> Dict[str, int]:
        """Resolve and persist levels for every user."""
        results = {
            "checked": 0,
            "updated": 0,
            "errors": 0
        }

        levelTable = self.rules.getLevels()
        allUsers = self.users.getAll()
        levels = resolveLevels(allUsers, levelTable)

        for user in allUsers:
            try:
                results["checked"] += 1
                if await self._applyLevel(user, levels[user.email], allUsers):
                    self.session.commit()
                    results["updated"] += 1
            except Exception as e:
                logger.error(f"Error syncing level for user {user.email}: {e}")
                self.session.rollback()
                results["errors"] += 1

        logger.info(
            f"Level sync complete: checked={results['checked']}, "
            f"updated={results['updated']}, errors={results['errors']}"
        )

        return results

    def _checkAdmin(self, adminEmail: str):
        if not adminEmail or adminEmail.strip().lower() not in config.ADMINS:
            logger.error(f"{adminEmail} is not an admin")
            raise InvalidOverride(f"{adminEmail} is not allowed to assign levels")

    async def assignOverride(self, email: str, level: int, adminEmail: str) -> Dict:
        """Pin a user to a level regardless of thresholds; 0 is a valid override."""
        self._checkAdmin(adminEmail)

        levelTable = self.rules.getLevels()
        if level not in {row.level for row in levelTable}:
            raise InvalidOverride(f"Level {level} is not configured")

        user = self._getUser(email)
        allUsers = self.users.getAll()
        previous = resolveLevel(user, allUsers, levelTable)

        user.overrideLevel = level
        user.level = level
        self.session.add(LevelHistory(
            userID=user.userID,
            previousLevel=previous,
            newLevel=level,
            committedBalance=committedBalanceOf(user),
            directReferrals=countDirectReferrals(user, allUsers),
            method="assigned",
            assignedBy=adminEmail,
        ))
        self.session.commit()

        logger.info(f"Level {level} assigned to {email} by {adminEmail}")
        await eventBus.emit(EngineEvents.LEVEL_ASSIGNED, {
            "email": email,
            "previousLevel": previous,
            "newLevel": level,
            "assignedBy": adminEmail,
        })

        return {"email": email, "previousLevel": previous, "level": level}

    async def clearOverride(self, email: str, adminEmail: Optional[str] = None) -> Dict:
        """Drop a manual override and fall back to the natural level."""
        user = self._getUser(email)
        if user.overrideLevel is None:
            return {"email": email, "cleared": False, "level": user.level or 0}

        previous = user.overrideLevel
        user.overrideLevel = None

        levelTable = self.rules.getLevels()
        allUsers = self.users.getAll()
        natural = resolveLevel(user, allUsers, levelTable)
        user.level = natural

        self.session.add(LevelHistory(
            userID=user.userID,
            previousLevel=previous,
            newLevel=natural,
            committedBalance=committedBalanceOf(user),
            directReferrals=countDirectReferrals(user, allUsers),
            method="cleared",
            assignedBy=adminEmail,
        ))
        self.session.commit()

        logger.info(f"Level override cleared for {email}: {previous} -> {natural}")
        return {"email": email, "cleared": True, "level": natural}
