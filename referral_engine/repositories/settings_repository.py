# referral_engine/repositories/settings_repository.py
"""
Admin-editable platform settings with engine defaults as fallback.
"""
from typing import Any, Dict
from sqlalchemy.orm import Session

from models import PlatformSetting
from referral_engine.config.levels import (
    DEFAULT_TEAM_COMMISSION, DEFAULT_UPLINE_COMMISSION, DEFAULT_COMMISSION_SCHEDULE, DEFAULT_BONUS_SETTINGS,
    TEAM_COMMISSION_KEY, UPLINE_COMMISSION_KEY, COMMISSION_SCHEDULE_KEY, BONUS_SETTINGS_KEY,
)
from referral_engine.core.eligibility import TeamCommissionSettings, UplineCommissionSettings
from referral_engine.utils.money import toDecimal


class SettingsRepository:

    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str, default: Any = None) -> Any:
        setting = self.session.get(PlatformSetting, key)
        if setting is None or setting.value is None:
            return default
        return setting.value

    def set(self, key: str, value: Any):
        setting = self.session.get(PlatformSetting, key)
        if setting is None:
            setting = PlatformSetting(key=key)
            self.session.add(setting)
        setting.value = value

    def getTeamCommission(self) -> TeamCommissionSettings:
        stored = self.get(TEAM_COMMISSION_KEY, {})
        rates = dict(DEFAULT_TEAM_COMMISSION["rates"])
        enabled = dict(DEFAULT_TEAM_COMMISSION["enabled"])

        # JSON object keys come back as strings
        for layer, rate in (stored.get("rates") or {}).items():
            rates[int(layer)] = toDecimal(rate)
        for layer, flag in (stored.get("enabled") or {}).items():
            enabled[int(layer)] = bool(flag)

        return TeamCommissionSettings(rates=rates, enabled=enabled)

    def getUplineCommission(self) -> UplineCommissionSettings:
        stored = {**DEFAULT_UPLINE_COMMISSION, **self.get(UPLINE_COMMISSION_KEY, {})}
        return UplineCommissionSettings(
            enabled=bool(stored["enabled"]),
            rate=toDecimal(stored["rate"]),
            requiredReferrals=int(stored["requiredReferrals"] or 0),
        )

    def getSchedule(self) -> Dict[str, str]:
        return {**DEFAULT_COMMISSION_SCHEDULE, **self.get(COMMISSION_SCHEDULE_KEY, {})}

    def getBonusSettings(self) -> Dict[str, bool]:
        """Enabled flag per bonus type ("signup", "referral")."""
        stored = self.get(BONUS_SETTINGS_KEY, {})
        return {
            bonusType: bool({**defaults, **(stored.get(bonusType) or {})}["enabled"])
            for bonusType, defaults in DEFAULT_BONUS_SETTINGS.items()
        }
