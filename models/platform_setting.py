# models/platform_setting.py
"""
PlatformSetting model - admin-editable key/value configuration.
"""
from sqlalchemy import Column, String, JSON
from models.base import Base, AuditMixin


class PlatformSetting(Base, AuditMixin):
    __tablename__ = 'platform_settings'

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)
    # team_commission      -> {"rates": {"1": 10, "2": 5, "3": 2}, "enabled": {"1": true, ...}}
    # upline_commission    -> {"enabled": false, "rate": 5, "requiredReferrals": 3}
    # commission_schedule  -> {"resetTime": "00:00", "timezone": "Asia/Kolkata"}

    def __repr__(self):
        return f"<PlatformSetting(key={self.key})>"
