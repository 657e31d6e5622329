"""Integration tests for CSV team and activity reports."""

import csv
import io
from datetime import timedelta
from decimal import Decimal

import pytest

from csv_reports import generate_csv_report
from models import CompletedTask
from referral_engine.config.levels import CommissionCategory
from referral_engine.services.crediter import CommissionCrediter, PayoutInstruction
from tests.factories import NOW


def readRows(output):
    text = output.getvalue().decode("utf-8-sig")
    return list(csv.reader(io.StringIO(text), delimiter=";"))


def test_team_report(session, addUser):
    root = addUser("root@example.com", code="ROOT")
    a = addUser("a@example.com", code="A", referredBy="ROOT", task="150")
    addUser("b@example.com", code="B", referredBy="A", status="inactive")
    addUser("c@example.com", code="C", referredBy="B")
    addUser("d@example.com", code="D", referredBy="C")
    session.add(CompletedTask(userID=a.userID, title="t", earnings=Decimal("1.25"), completedAt=NOW))
    session.commit()

    rows = readRows(generate_csv_report(session, root, "team_full", {"since": NOW - timedelta(days=1)}))

    assert rows[0][:2] == ["Layer", "Email"]
    assert [(row[0], row[1]) for row in rows[1:]] == [
        ("L1", "a@example.com"),
        ("L2", "b@example.com"),
        ("L3", "c@example.com"),
        ("Community", "d@example.com"),
    ]
    assert rows[1][3] == "1"
    assert rows[1][7] == "1.25"
    assert rows[2][4] == "inactive"


@pytest.mark.asyncio
async def test_activity_report(session, addUser):
    user = addUser("u@example.com")
    await CommissionCrediter(session).credit(PayoutInstruction(
        targetEmail="u@example.com", category=CommissionCategory.TEAM,
        amount=Decimal("3.50"), description="Team commission"), NOW)

    rows = readRows(generate_csv_report(session, user, "activity_history"))

    assert len(rows) == 2
    assert rows[1][2:] == ["team", "3.5", "Team commission"]


def test_unknown_report(session, addUser):
    assert generate_csv_report(session, addUser("u@example.com"), "nope") is None
