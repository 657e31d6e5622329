# referral_engine/core/downline.py
"""
Downline walker - builds the L1/L2/L3 layers and the L4+ community tail
from a flat snapshot of users.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from referral_engine.core.level_resolver import resolveLevels


@dataclass
class DownlineTree:
    level1: List = field(default_factory=list)
    level2: List = field(default_factory=list)
    level3: List = field(default_factory=list)
    tail: List = field(default_factory=list)  # community, L4 and deeper

    @property
    def layers(self) -> Dict[int, List]:
        return {1: self.level1, 2: self.level2, 3: self.level3}

    @property
    def l1To3Size(self) -> int:
        return len(self.level1) + len(self.level2) + len(self.level3)

    @property
    def allMembers(self) -> List:
        return self.level1 + self.level2 + self.level3 + self.tail


@dataclass(frozen=True)
class EnrichedMember:
    user: object
    level: int
    status: str


def _childrenByCode(allUsers: Sequence) -> Dict[str, List]:
    children = defaultdict(list)
    for user in allUsers:
        if user.referredBy:
            children[user.referredBy].append(user)
    return children


def buildTree(user, allUsers: Sequence) -> DownlineTree:
    """
    Walk the referral links below a user.

    Every generation is deduplicated against a visited set seeded with the
    user's own email, so a cyclic referredBy chain terminates and never puts
    the user in their own downline. Member order follows allUsers order.
    """
    children = _childrenByCode(allUsers)
    visited = {user.email}

    def nextGeneration(parents: List) -> List:
        generation = []
        for parent in parents:
            if not parent.referralCode:
                continue
            for member in children.get(parent.referralCode, []):
                if member.email in visited:
                    continue
                visited.add(member.email)
                generation.append(member)
        return generation

    tree = DownlineTree()
    tree.level1 = nextGeneration([user])
    tree.level2 = nextGeneration(tree.level1)
    tree.level3 = nextGeneration(tree.level2)

    generation = nextGeneration(tree.level3)
    while generation:
        tree.tail.extend(generation)
        generation = nextGeneration(generation)

    return tree


def findUpline(user, allUsers: Sequence) -> Optional[object]:
    """Direct sponsor, or None when referredBy is empty or matches nobody."""
    if not user.referredBy:
        return None
    for candidate in allUsers:
        if candidate.referralCode == user.referredBy and candidate.email != user.email:
            return candidate
    return None


def enrichMembers(members: Sequence, allUsers: Sequence, levelTable: Sequence) -> List[EnrichedMember]:
    """Attach each member's live level and status; nothing is cached on the tree."""
    current = {u.email: u for u in allUsers}
    levels = resolveLevels(allUsers, levelTable)
    enriched = []
    for member in members:
        live = current.get(member.email, member)
        enriched.append(EnrichedMember(user=live, level=levels.get(member.email, 0), status=live.status))
    return enriched
