"""
Pydantic schemas for admin user-management requests.
"""

from __future__ import annotations

from pydantic import BaseModel


class StatusUpdateIn(BaseModel):
    status: str | None = None
