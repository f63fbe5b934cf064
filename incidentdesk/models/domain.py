"""Domain contracts shared by the identity handler, routes and worker."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from incidentdesk.types import Role

ATTR_EMAIL = "email"
ATTR_EMAIL_VERIFIED = "email_verified"
ATTR_COMPANY_ID = "custom:companyId"
ATTR_COMPANY_NAME = "custom:companyName"


class Identity(BaseModel):
    """The caller, as described by their session claims."""

    model_config = ConfigDict(frozen=True)

    username: str
    email: str = ""
    groups: tuple[str, ...] = ()
    company_id: str | None = None
    company_name: str | None = None

    @property
    def role(self) -> Role:
        return Role.resolve(self.groups)

    @property
    def is_super_admin(self) -> bool:
        return self.role is Role.SUPER_ADMIN


class DirectoryUser(BaseModel):
    """A user record in the directory's native flat-attribute shape."""

    username: str
    attributes: dict[str, str] = {}
    status: str | None = None
    enabled: bool = True
    created_at: datetime | None = None


class User(BaseModel):
    """User projection returned to API callers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str
    email: str | None = None
    email_verified: bool = False
    status: str | None = None
    enabled: bool = True
    created_at: str | None = None
    groups: list[str] = Field(default_factory=list)
    company_id: str | None = None
    company_name: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class AnalysisOutcome(BaseModel):
    success: bool
    message: str = ""
    analysis: dict[str, Any] | None = None
