"""
Scheduler entry point for the referral engine.

    python run_engine.py seed
    python run_engine.py sync-levels
    python run_engine.py evaluate [--email user@example.com]
"""
import argparse
import asyncio
import logging

import config
from init import get_session, init_tables, seed_defaults
from referral_engine import CommissionService, LevelService

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


async def run(command: str, email: str = None):
    Session, engine = get_session()
    init_tables(engine)
    session = Session()

    try:
        if command == "seed":
            added = seed_defaults(session)
            logger.info(f"Seeded {added} default rows")

        elif command == "sync-levels":
            await LevelService(session).syncAllUsers()

        elif command == "evaluate":
            service = CommissionService(session)
            if email:
                result = await service.evaluateUser(email)
                logger.info(f"Credited {result['totalCredited']} to {email}, skipped: {result['skipped']}")
            else:
                # Levels first so activations are visible to the commission pass
                await LevelService(session).syncAllUsers()
                await service.evaluateAll()
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description="Referral tier and commission engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("seed", help="Create tables and insert the default level table and bonus tiers")
    subparsers.add_parser("sync-levels", help="Resolve and persist every user's level")
    evaluate = subparsers.add_parser("evaluate", help="Credit due team, community and upline commissions")
    evaluate.add_argument("--email", help="Evaluate a single user instead of everyone")

    args = parser.parse_args()
    asyncio.run(run(args.command, getattr(args, "email", None)))


if __name__ == "__main__":
    main()
