# referral_engine/exceptions.py
"""
Errors raised by the engine services.
Pure engine functions never raise for data problems; they return zeros.
"""


class EngineError(Exception):
    """Base class for referral engine errors."""


class UserNotFound(EngineError):
    def __init__(self, email: str):
        super().__init__(f"User {email} not found")
        self.email = email


class StaleCheckpointError(EngineError):
    """The checkpoint moved between aggregation and credit; the window was already paid."""

    def __init__(self, email: str, category: str):
        super().__init__(f"Checkpoint for {email}/{category} advanced concurrently")
        self.email = email
        self.category = category


class RewardNotEligible(EngineError):
    def __init__(self, ruleType: str, ruleId: int, conditions: dict):
        failed = [name for name, met in conditions.items() if not met]
        super().__init__(f"Not eligible for {ruleType} #{ruleId}: {', '.join(failed) or 'unknown'}")
        self.ruleType = ruleType
        self.ruleId = ruleId
        self.conditions = conditions


class RewardAlreadyClaimed(EngineError):
    def __init__(self, ruleType: str, ruleId: int):
        super().__init__(f"{ruleType} #{ruleId} already claimed")
        self.ruleType = ruleType
        self.ruleId = ruleId


class DailyQuotaExceeded(EngineError):
    def __init__(self, email: str, quota: int):
        super().__init__(f"User {email} reached the daily task quota of {quota}")
        self.email = email
        self.quota = quota


class InvalidOverride(EngineError):
    """Override level outside the configured level table or assigner not an admin."""
