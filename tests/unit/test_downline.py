"""
Unit tests for the downline walker.

Tests cover:
- L1/L2/L3 layers and the community tail
- Partition and self-exclusion
- Termination on cyclic referral links
- Upline lookup and member enrichment
"""

from referral_engine.core.downline import buildTree, findUpline, enrichMembers
from tests.factories import makeUser


def chain(length, prefix="m"):
    """root -> m1 -> m2 -> ... -> m<length>"""
    root = makeUser("root@example.com", code="ROOT")
    users = [root]
    parent = root
    for i in range(1, length + 1):
        member = makeUser(f"{prefix}{i}@example.com", code=f"{prefix.upper()}{i}", referredBy=parent.referralCode)
        users.append(member)
        parent = member
    return root, users


def emails(members):
    return [m.email for m in members]


class TestLayers:

    def test_layers_and_tail(self):
        root, users = chain(6)
        tree = buildTree(root, users)

        assert emails(tree.level1) == ["m1@example.com"]
        assert emails(tree.level2) == ["m2@example.com"]
        assert emails(tree.level3) == ["m3@example.com"]
        assert emails(tree.tail) == ["m4@example.com", "m5@example.com", "m6@example.com"]
        assert tree.l1To3Size == 3
        assert len(tree.allMembers) == 6

    def test_wide_first_layer(self):
        root = makeUser("root@example.com", code="ROOT")
        kids = [makeUser(f"k{i}@example.com", code=f"K{i}", referredBy="ROOT") for i in range(4)]
        grandkid = makeUser("g@example.com", code="G", referredBy="K2")
        tree = buildTree(root, [root, grandkid] + kids)

        assert emails(tree.level1) == [k.email for k in kids]
        assert emails(tree.level2) == ["g@example.com"]
        assert tree.level3 == []
        assert tree.tail == []

    def test_no_referrals(self):
        root = makeUser("root@example.com", code="ROOT")
        tree = buildTree(root, [root])
        assert tree.allMembers == []
        assert tree.l1To3Size == 0

    def test_empty_middle_layer_stops_walk(self):
        root, users = chain(1)
        tree = buildTree(root, users)
        assert tree.level2 == [] and tree.level3 == [] and tree.tail == []

    def test_missing_referral_code(self):
        root = makeUser("root@example.com", code="ROOT")
        root.referralCode = None
        orphan = makeUser("o@example.com", code="O", referredBy=None)
        assert buildTree(root, [root, orphan]).allMembers == []

    def test_deterministic(self):
        root, users = chain(8)
        assert emails(buildTree(root, users).allMembers) == emails(buildTree(root, users).allMembers)


class TestPartition:

    def test_layers_are_disjoint(self):
        root = makeUser("root@example.com", code="ROOT")
        a = makeUser("a@example.com", code="A", referredBy="ROOT")
        b = makeUser("b@example.com", code="B", referredBy="A")
        c = makeUser("c@example.com", code="C", referredBy="B")
        d = makeUser("d@example.com", code="D", referredBy="C")
        tree = buildTree(root, [root, a, b, c, d])

        layers = [set(emails(tree.level1)), set(emails(tree.level2)), set(emails(tree.level3)), set(emails(tree.tail))]
        for i, layer in enumerate(layers):
            for other in layers[i + 1:]:
                assert layer.isdisjoint(other)

    def test_user_never_in_own_downline(self):
        root = makeUser("root@example.com", code="ROOT", referredBy="C")
        a = makeUser("a@example.com", code="A", referredBy="ROOT")
        b = makeUser("b@example.com", code="B", referredBy="A")
        c = makeUser("c@example.com", code="C", referredBy="B")
        tree = buildTree(root, [root, a, b, c])

        assert "root@example.com" not in emails(tree.allMembers)
        assert emails(tree.level3) == ["c@example.com"]

    def test_self_referral(self):
        root = makeUser("root@example.com", code="ROOT", referredBy="ROOT")
        assert buildTree(root, [root]).allMembers == []


class TestCycles:
    """The tail walk terminates even when referral links loop."""

    def test_cycle_through_the_root(self):
        root = makeUser("root@example.com", code="ROOT", referredBy="F")
        users = [root]
        parent = "ROOT"
        for code in ["A", "B", "C", "D", "E", "F"]:
            users.append(makeUser(f"{code.lower()}@example.com", code=code, referredBy=parent))
            parent = code

        tree = buildTree(root, users)

        members = emails(tree.allMembers)
        assert len(members) == len(set(members))
        assert "root@example.com" not in members
        assert emails(tree.tail) == ["d@example.com", "e@example.com", "f@example.com"]

    def test_two_node_loop_outside_tree(self):
        root = makeUser("root@example.com", code="ROOT")
        x = makeUser("x@example.com", code="X", referredBy="Y")
        y = makeUser("y@example.com", code="Y", referredBy="X")
        assert buildTree(root, [root, x, y]).allMembers == []

    def test_every_member_of_a_loop_is_walked(self):
        a = makeUser("a@example.com", code="A", referredBy="C")
        b = makeUser("b@example.com", code="B", referredBy="A")
        c = makeUser("c@example.com", code="C", referredBy="B")
        tree = buildTree(a, [a, b, c])

        assert emails(tree.level1) == ["b@example.com"]
        assert emails(tree.level2) == ["c@example.com"]
        assert tree.level3 == []


class TestUpline:

    def test_found(self):
        root, users = chain(2)
        assert findUpline(users[2], users).email == "m1@example.com"

    def test_missing_referrer(self):
        orphan = makeUser("o@example.com", code="O", referredBy="NOPE")
        assert findUpline(orphan, [orphan]) is None

    def test_no_referrer(self):
        root, users = chain(1)
        assert findUpline(root, users) is None


def test_enrich_members_reads_live_status(levelTable):
    root, users = chain(1)
    stale = makeUser("m1@example.com", code="M1", referredBy="ROOT", status="inactive")
    users[1].balanceTask = users[1].balanceTask + 150

    enriched = enrichMembers([stale], users, levelTable)

    assert enriched[0].status == "active"
    assert enriched[0].level == 1
