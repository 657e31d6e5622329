"""
Referral engine - level resolution, downline aggregation and commission crediting.
"""

# Services
from referral_engine.services.commission_service import CommissionService
from referral_engine.services.crediter import CommissionCrediter, PayoutInstruction
from referral_engine.services.level_service import LevelService
from referral_engine.services.reward_service import RewardService
from referral_engine.services.task_service import TaskService

# Configuration
from referral_engine.config.levels import CommissionCategory, LEVEL_CONFIG

# Utilities
from referral_engine.utils.time_machine import timeMachine

# Events
from referral_engine.events.event_bus import eventBus, EngineEvents

__all__ = [
    # Services
    'CommissionService',
    'CommissionCrediter',
    'PayoutInstruction',
    'LevelService',
    'RewardService',
    'TaskService',

    # Config
    'CommissionCategory',
    'LEVEL_CONFIG',

    # Utils
    'timeMachine',

    # Events
    'eventBus',
    'EngineEvents',
]
