# referral_engine/config/levels.py
"""
Default level table, commission rates and engine constants.
Admin-edited values stored in the database take precedence.
"""
from enum import Enum
from decimal import Decimal

import config


class CommissionCategory(Enum):
    TEAM = "team"
    COMMUNITY = "community"
    UPLINE = "upline"
    TEAM_REWARD = "team_reward"
    TEAM_SIZE_REWARD = "team_size_reward"
    SALARY = "salary"
    SIGNUP_BONUS = "signup_bonus"
    REFERRAL_BONUS = "referral_bonus"


# Categories paid from a time window and guarded by a checkpoint
CHECKPOINTED_CATEGORIES = (
    CommissionCategory.TEAM,
    CommissionCategory.COMMUNITY,
    CommissionCategory.UPLINE,
)

# Categories paid as one-off or periodic claims
CLAIM_CATEGORIES = (
    CommissionCategory.TEAM_REWARD,
    CommissionCategory.TEAM_SIZE_REWARD,
    CommissionCategory.SALARY,
    CommissionCategory.SIGNUP_BONUS,
    CommissionCategory.REFERRAL_BONUS,
)


class UserStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISABLED = "disabled"


LEVEL_CONFIG = {
    0: {
        "name": "Unranked",
        "minAmount": Decimal("0"),
        "rate": Decimal("0"),
        "referrals": 0,
        "dailyTasks": 0,
        "monthlyWithdrawals": 0,
        "minWithdrawal": Decimal("0"),
        "earningPerTask": Decimal("0"),
        "withdrawalFee": Decimal("0"),
    },
    1: {
        "name": "Bronze",
        "minAmount": Decimal("100"),
        "rate": Decimal("1.8"),
        "referrals": 0,
        "dailyTasks": 15,
        "monthlyWithdrawals": 1,
        "minWithdrawal": Decimal("150"),
        "earningPerTask": Decimal("0.30"),
        "withdrawalFee": Decimal("5"),
    },
    2: {
        "name": "Silver",
        "minAmount": Decimal("500"),
        "rate": Decimal("2.8"),
        "referrals": 8,
        "dailyTasks": 25,
        "monthlyWithdrawals": 1,
        "minWithdrawal": Decimal("500"),
        "earningPerTask": Decimal("0.50"),
        "withdrawalFee": Decimal("3"),
    },
    3: {
        "name": "Gold",
        "minAmount": Decimal("2000"),
        "rate": Decimal("3.8"),
        "referrals": 16,
        "dailyTasks": 35,
        "monthlyWithdrawals": 1,
        "minWithdrawal": Decimal("1500"),
        "earningPerTask": Decimal("1.10"),
        "withdrawalFee": Decimal("1"),
    },
    4: {
        "name": "Platinum",
        "minAmount": Decimal("6000"),
        "rate": Decimal("4.8"),
        "referrals": 36,
        "dailyTasks": 45,
        "monthlyWithdrawals": 1,
        "minWithdrawal": Decimal("2500"),
        "earningPerTask": Decimal("2.50"),
        "withdrawalFee": Decimal("1"),
    },
    5: {
        "name": "Diamond",
        "minAmount": Decimal("20000"),
        "rate": Decimal("5.8"),
        "referrals": 55,
        "dailyTasks": 55,
        "monthlyWithdrawals": 2,
        "minWithdrawal": Decimal("3500"),
        "earningPerTask": Decimal("5.00"),
        "withdrawalFee": Decimal("1"),
    },
}

# Team commission: % of each layer's task earnings
DEFAULT_TEAM_COMMISSION = {
    "rates": {1: Decimal("10"), 2: Decimal("5"), 3: Decimal("2")},
    "enabled": {1: True, 2: True, 3: True},
}

# Upline commission: % of the sponsor's task earnings paid to the downline
DEFAULT_UPLINE_COMMISSION = {
    "enabled": False,
    "rate": Decimal("5"),
    "requiredReferrals": 3,
}

# Signup and referral bonus tiers: (minDeposit, bonusAmount)
BONUS_SIGNUP = "signup"
BONUS_REFERRAL = "referral"

DEFAULT_BONUS_TIERS = {
    BONUS_SIGNUP: [(Decimal("100"), Decimal("8"))],
    BONUS_REFERRAL: [(Decimal("100"), Decimal("5"))],
}

DEFAULT_BONUS_SETTINGS = {
    BONUS_SIGNUP: {"enabled": True},
    BONUS_REFERRAL: {"enabled": True},
}

DEFAULT_COMMISSION_SCHEDULE = {
    "resetTime": config.COMMISSION_RESET_TIME,
    "timezone": config.PLATFORM_TIMEZONE,
}

# Setting keys
TEAM_COMMISSION_KEY = "team_commission"
UPLINE_COMMISSION_KEY = "upline_commission"
COMMISSION_SCHEDULE_KEY = "commission_schedule"
BONUS_SETTINGS_KEY = "bonus_settings"

# Constants
DAYS_PER_YEAR = Decimal("365")
CENT = Decimal("0.01")
TASK_EARNING_QUANTUM = Decimal("0.000001")
