"""
Pydantic schemas for registration, login and profile requests.

Field-level rules (username, email, password policy) are checked in the
identity service so that every violation is reported together, so most
fields here are optional strings.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterIn(_CamelIn):
    """Registration payload. Extra keys are the role-specific profile data."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    username: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None

    def role_data(self) -> dict:
        return dict(self.model_extra or {})


class LoginIn(_CamelIn):
    email: str | None = None
    password: str | None = None


class ChangePasswordIn(_CamelIn):
    current_password: str | None = None
    new_password: str | None = None
