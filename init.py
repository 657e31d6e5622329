from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from models import Base, Level, BonusTier
import config
from referral_engine.config.levels import DEFAULT_BONUS_TIERS
from referral_engine.core.level_resolver import buildLevelTable


def get_session(url=None):
    """Creates and returns the SQLAlchemy session factory and engine"""
    url = url or config.DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    session_factory = sessionmaker(bind=engine)
    return session_factory, engine


def init_tables(engine):
    """Creates all database tables"""
    Base.metadata.create_all(engine)


def seed_defaults(session):
    """
    Inserts the default level table and bonus tiers where none exist yet.
    Returns the number of rows added.
    """
    rows = []
    if not session.query(Level).count():
        rows.extend(buildLevelTable())

    if not session.query(BonusTier).count():
        for bonusType, tiers in DEFAULT_BONUS_TIERS.items():
            rows.extend(
                BonusTier(bonusType=bonusType, minDeposit=minDeposit, bonusAmount=bonusAmount, enabled=True)
                for minDeposit, bonusAmount in tiers
            )

    if rows:
        session.add_all(rows)
        session.commit()
    return len(rows)
