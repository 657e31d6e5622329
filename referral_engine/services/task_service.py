# referral_engine/services/task_service.py
"""
Daily task service - quota enforcement and per-task yield.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session
import logging

from models import User, CompletedTask
from referral_engine.config.levels import DAYS_PER_YEAR, TASK_EARNING_QUANTUM
from referral_engine.core.level_resolver import resolveLevel, getLevelDefinition
from referral_engine.events.event_bus import eventBus, EngineEvents
from referral_engine.exceptions import UserNotFound, DailyQuotaExceeded
from referral_engine.repositories.ledger_repository import LedgerRepository
from referral_engine.repositories.rule_repository import RuleRepository
from referral_engine.repositories.settings_repository import SettingsRepository
from referral_engine.repositories.user_repository import UserRepository
from referral_engine.utils.money import ZERO, toDecimal
from referral_engine.utils.time_machine import timeMachine, currentPeriodStart

logger = logging.getLogger(__name__)


def earningPerTask(taskBalance, rate, dailyTasks: int) -> Decimal:
    """One task's share of the daily yield on the task balance; 0 when the quota is 0."""
    if not dailyTasks:
        return ZERO
    dailyYield = toDecimal(taskBalance) * toDecimal(rate) / Decimal("100") / DAYS_PER_YEAR
    return (dailyYield / int(dailyTasks)).quantize(TASK_EARNING_QUANTUM)


class TaskService:

    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)
        self.rules = RuleRepository(session)
        self.settings = SettingsRepository(session)
        self.ledger = LedgerRepository(session)

    def _getUser(self, email: str) -> User:
        user = self.users.getByEmail(email)
        if not user:
            raise UserNotFound(email)
        return user

    def _periodStart(self, now: datetime) -> datetime:
        schedule = self.settings.getSchedule()
        return currentPeriodStart(now, schedule["resetTime"], schedule["timezone"])

    async def tasksCompletedToday(self, email: str, now: Optional[datetime] = None) -> int:
        now = now or timeMachine.now
        user = self._getUser(email)
        return self.ledger.countTasksSince(user, self._periodStart(now))

    async def completeTask(self, email: str, title: str, now: Optional[datetime] = None) -> CompletedTask:
        """Log one completed task and accrue its earnings; refused once the daily quota is used up."""
        now = now or timeMachine.now
        user = self._getUser(email)

        levelTable = self.rules.getLevels()
        level = resolveLevel(user, self.users.getAll(), levelTable)
        definition = getLevelDefinition(levelTable, level)
        quota = int(definition.dailyTasks or 0)

        doneToday = self.ledger.countTasksSince(user, self._periodStart(now))
        if doneToday >= quota:
            logger.warning(f"User {email} hit the daily task quota ({doneToday}/{quota})")
            raise DailyQuotaExceeded(email, quota)

        earnings = earningPerTask(user.balanceTask, definition.rate, quota)

        task = self.ledger.addCompletedTask(user, title, earnings, now)
        if earnings > 0:
            user.taskRewardsEarned = toDecimal(user.taskRewardsEarned) + earnings
        self.session.commit()

        logger.info(f"User {email} completed task '{title}' ({doneToday + 1}/{quota}), earned {earnings}")
        await eventBus.emit(EngineEvents.TASK_COMPLETED, {
            "email": email,
            "taskId": task.taskID,
            "earnings": earnings,
            "completedToday": doneToday + 1,
        })

        return task
