from datetime import datetime, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from servicehub.models import Base
from servicehub.models.principal import Admin, Customer, Mechanic
from servicehub.services.user_stats import get_user_stats


def _make_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


def test_empty_population_yields_zero_structure():
    db = _make_session()
    assert get_user_stats(db) == {
        "totalUsers": 0,
        "roleBreakdown": {"customers": 0, "mechanics": 0, "admins": 0},
        "statusBreakdown": {"approved": 0, "pending": 0, "banned": 0},
        "recentActivity": {"signupsLast30Days": 0},
        "approvalRate": 0,
    }


def test_breakdown_and_rounded_approval_rate():
    db = _make_session()
    now = datetime(2026, 10, 18, 12, 0, 0)
    db.add_all(
        [
            Customer(username="c1", email="c1@x.com", password_hash="x", status="approved", created_at=now),
            Customer(username="c2", email="c2@x.com", password_hash="x", status="pending", created_at=now),
            Mechanic(
                username="m1",
                email="m1@x.com",
                password_hash="x",
                status="banned",
                created_at=now - timedelta(days=45),
            ),
            Mechanic(username="m2", email="m2@x.com", password_hash="x", status="pending", created_at=now),
            Admin(
                username="a1",
                email="a1@x.com",
                password_hash="x",
                status="approved",
                created_at=now - timedelta(days=90),
            ),
            Customer(username="c3", email="c3@x.com", password_hash="x", status="pending", created_at=now),
        ]
    )
    db.commit()

    stats = get_user_stats(db, now=now)
    assert stats["totalUsers"] == 6
    assert stats["roleBreakdown"] == {"customers": 3, "mechanics": 2, "admins": 1}
    assert stats["statusBreakdown"] == {"approved": 2, "pending": 3, "banned": 1}
    assert stats["recentActivity"] == {"signupsLast30Days": 4}
    assert stats["approvalRate"] == 33.33
