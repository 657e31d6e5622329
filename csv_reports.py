import io
import csv
import logging
from typing import List, Dict, Any, Optional, Tuple
from sqlalchemy.orm import Session

from models import User
from referral_engine.core.aggregator import earningsSince
from referral_engine.core.downline import buildTree, enrichMembers
from referral_engine.core.level_resolver import countDirectReferrals
from referral_engine.repositories.ledger_repository import LedgerRepository
from referral_engine.repositories.rule_repository import RuleRepository
from referral_engine.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Dictionary mapping report types to information about the report
REPORTS = {
    "team_full": {
        "name": "Team Full Report",
        "generator": lambda s, u, p: team_full_report(s, u, p)
    },
    "activity_history": {
        "name": "Activity History",
        "generator": lambda s, u, p: activity_history_report(s, u, p)
    }
}

REPORT_TYPES = {key: info["name"] for key, info in REPORTS.items()}


def generate_csv_report(
        session: Session,
        user: User,
        report_type: str,
        params: Dict[str, Any] = None
) -> Optional[io.BytesIO]:
    """
    Generates a CSV report based on report type and parameters

    Args:
        session: Database session
        user: User object requesting the report
        report_type: Type of report (one of REPORTS keys)
        params: Additional parameters for report customization

    Returns:
        BytesIO object containing CSV data or None if report generation failed
    """
    if report_type not in REPORTS:
        logger.error(f"Unknown report type: {report_type}")
        return None

    try:
        if params is None:
            params = {}

        headers, data = REPORTS[report_type]["generator"](session, user, params)

        string_output = io.StringIO()
        writer = csv.writer(string_output, delimiter=';')  # semicolon for Excel

        writer.writerow(headers)
        for row in data:
            writer.writerow(row)

        output = io.BytesIO(string_output.getvalue().encode('utf-8-sig'))  # BOM for Excel
        output.seek(0)
        return output

    except Exception as e:
        logger.error(f"Error generating {report_type} report: {e}", exc_info=True)
        return None


def team_full_report(session: Session, user: User, params: Dict[str, Any]) -> Tuple[List[str], List[List[Any]]]:
    """
    Generate full team report: one row per downline member, L1 to L3 then
    the community tail, with live level and status.

    Params:
        since: optional datetime, lower bound for the task earnings column
    """
    headers = ["Layer", "Email", "Registration Date", "Level", "Status", "Direct Referrals",
               "Total Holdings", "Task Earnings"]

    allUsers = UserRepository(session).getAll()
    levelTable = RuleRepository(session).getLevels()
    taskLog = LedgerRepository(session).getTaskLog(since=params.get("since"))
    tree = buildTree(user, allUsers)

    layers = [("L1", tree.level1), ("L2", tree.level2), ("L3", tree.level3), ("Community", tree.tail)]

    data = []
    for label, members in layers:
        for member in enrichMembers(members, allUsers, levelTable):
            ref = member.user
            data.append([
                label,
                ref.email,
                ref.createdAt.strftime("%Y-%m-%d") if ref.createdAt else "",
                member.level,
                member.status,
                countDirectReferrals(ref, allUsers),
                float(ref.totalHoldings),
                float(earningsSince(taskLog.get(ref.email, ()), params.get("since"))),
            ])

    return headers, data


def activity_history_report(session: Session, user: User, params: Dict[str, Any]) -> Tuple[List[str], List[List[Any]]]:
    """Credited commissions and rewards of the user, newest first."""
    headers = ["Activity ID", "Date", "Category", "Amount", "Description"]

    records = LedgerRepository(session).getActivities(user.email)

    data = []
    for record in records:
        data.append([
            record.activityID,
            record.createdAt.strftime("%Y-%m-%d %H:%M:%S") if record.createdAt else "",
            record.category,
            float(record.amount) if record.amount is not None else 0,
            record.description or "",
        ])

    return headers, data
