# referral_engine/events/event_bus.py
"""
In-process notifications for engine state changes.

Services emit after their transaction commits, so a handler only ever sees
persisted credits, claims and level changes. A failing handler is logged and
skipped; the emitting service never sees the error.
"""
from collections import defaultdict
from typing import Any, Callable, Dict, List
import inspect
import logging

logger = logging.getLogger(__name__)


class EngineEvents:
    """Event names emitted by the referral engine, with their payload keys."""

    LEVEL_CHANGED = "level.changed"  # email, previousLevel, newLevel
    LEVEL_ASSIGNED = "level.assigned"  # email, previousLevel, newLevel, assignedBy
    USER_ACTIVATED = "user.activated"  # email, level, activatedAt

    COMMISSION_CREDITED = "commission.credited"  # email, category, amount, activityIds, creditedAt
    REWARD_CLAIMED = "reward.claimed"  # email, category, ruleId, amount

    TASK_COMPLETED = "task.completed"  # email, taskId, earnings, completedToday


class EventBus:
    """Process-wide singleton; handlers may be plain callables or coroutines."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._handlers = defaultdict(list)
        return cls._instance

    def subscribe(self, eventName: str, handler: Callable):
        self._handlers[eventName].append(handler)

    async def emit(self, eventName: str, data: Dict[str, Any]) -> int:
        """Deliver to every subscriber; returns how many handlers succeeded."""
        handlers: List[Callable] = list(self._handlers.get(eventName, ()))
        delivered = 0
        for handler in handlers:
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"{eventName} handler {getattr(handler, '__name__', handler)} failed: {e}",
                             exc_info=True)
        return delivered

    def clear(self):
        self._handlers.clear()


eventBus = EventBus()
