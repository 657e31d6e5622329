# referral_engine/repositories/rule_repository.py
"""
Level table and reward rule collections.
"""
from typing import List
from sqlalchemy.orm import Session

from models import Level, TeamReward, TeamSizeReward, SalaryPackage, CommunityCommissionRule, BonusTier
from referral_engine.core.eligibility import RuleSet


class RuleRepository:

    def __init__(self, session: Session):
        self.session = session

    def getLevels(self) -> List[Level]:
        return self.session.query(Level).order_by(Level.level).all()

    def _rules(self, model, orderBy, enabledOnly: bool):
        query = self.session.query(model)
        if enabledOnly:
            query = query.filter(model.enabled == True)  # noqa: E712
        return query.order_by(orderBy).all()

    def getTeamRewards(self, enabledOnly: bool = True) -> List[TeamReward]:
        return self._rules(TeamReward, TeamReward.rewardID, enabledOnly)

    def getTeamSizeRewards(self, enabledOnly: bool = True) -> List[TeamSizeReward]:
        return self._rules(TeamSizeReward, TeamSizeReward.rewardID, enabledOnly)

    def getSalaryPackages(self, enabledOnly: bool = True) -> List[SalaryPackage]:
        return self._rules(SalaryPackage, SalaryPackage.packageID, enabledOnly)

    def getCommunityRules(self, enabledOnly: bool = True) -> List[CommunityCommissionRule]:
        return self._rules(CommunityCommissionRule, CommunityCommissionRule.ruleID, enabledOnly)

    def getBonusTiers(self, bonusType: str, enabledOnly: bool = True) -> List[BonusTier]:
        query = self.session.query(BonusTier).filter(BonusTier.bonusType == bonusType)
        if enabledOnly:
            query = query.filter(BonusTier.enabled == True)  # noqa: E712
        return query.order_by(BonusTier.minDeposit).all()

    def getRuleSet(self) -> RuleSet:
        """All enabled rules, ready for the evaluator."""
        return RuleSet(
            teamRewards=self.getTeamRewards(),
            teamSizeRewards=self.getTeamSizeRewards(),
            salaryPackages=self.getSalaryPackages(),
            communityRules=self.getCommunityRules(),
        )
