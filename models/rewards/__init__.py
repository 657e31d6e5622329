"""
Reward rule models configured from the admin console.
"""

from models.rewards.team_reward import TeamReward
from models.rewards.team_size_reward import TeamSizeReward
from models.rewards.salary_package import SalaryPackage
from models.rewards.community_commission_rule import CommunityCommissionRule
from models.rewards.bonus_tier import BonusTier
from models.rewards.reward_claim import RewardClaim

__all__ = [
    'TeamReward',
    'TeamSizeReward',
    'SalaryPackage',
    'CommunityCommissionRule',
    'BonusTier',
    'RewardClaim',
]
