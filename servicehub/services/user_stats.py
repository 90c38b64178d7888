"""
Aggregate counts over the principal table for the admin dashboard.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..models.principal import (
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_MECHANIC,
    STATUS_APPROVED,
    STATUS_BANNED,
    STATUS_PENDING,
    Principal,
)


RECENT_SIGNUP_DAYS = 30


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def get_user_stats(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    since = now - timedelta(days=RECENT_SIGNUP_DAYS)
    row = db.query(
        func.count(Principal.id),
        _count_where(Principal.role == ROLE_CUSTOMER),
        _count_where(Principal.role == ROLE_MECHANIC),
        _count_where(Principal.role == ROLE_ADMIN),
        _count_where(Principal.status == STATUS_APPROVED),
        _count_where(Principal.status == STATUS_PENDING),
        _count_where(Principal.status == STATUS_BANNED),
        _count_where(Principal.created_at >= since),
    ).one()
    total, customers, mechanics, admins, approved, pending, banned, recent = (int(v or 0) for v in row)

    approval_rate = round(approved / total * 100, 2) if total else 0
    return {
        "totalUsers": total,
        "roleBreakdown": {"customers": customers, "mechanics": mechanics, "admins": admins},
        "statusBreakdown": {"approved": approved, "pending": pending, "banned": banned},
        "recentActivity": {"signupsLast30Days": recent},
        "approvalRate": approval_rate,
    }
