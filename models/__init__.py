"""
Database models for the task-reward platform.
Import all models here for easy access.
"""

# Base and mixins
from models.base import Base, AuditMixin

# Core models
from models.user import User
from models.level import Level
from models.completed_task import CompletedTask
from models.activity import Activity
from models.commission_checkpoint import CommissionCheckpoint
from models.level_history import LevelHistory
from models.platform_setting import PlatformSetting

# Reward rules
from models.rewards.team_reward import TeamReward
from models.rewards.team_size_reward import TeamSizeReward
from models.rewards.salary_package import SalaryPackage
from models.rewards.community_commission_rule import CommunityCommissionRule
from models.rewards.bonus_tier import BonusTier
from models.rewards.reward_claim import RewardClaim

__all__ = [
    # Base
    'Base',
    'AuditMixin',

    # Core
    'User',
    'Level',
    'CompletedTask',
    'Activity',
    'CommissionCheckpoint',
    'LevelHistory',
    'PlatformSetting',

    # Rewards
    'TeamReward',
    'TeamSizeReward',
    'SalaryPackage',
    'CommunityCommissionRule',
    'BonusTier',
    'RewardClaim',
]
