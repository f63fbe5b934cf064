"""Translation between directory attribute maps and the User projection."""

from __future__ import annotations

from incidentdesk.models.domain import (
    ATTR_COMPANY_ID,
    ATTR_COMPANY_NAME,
    ATTR_EMAIL,
    ATTR_EMAIL_VERIFIED,
    DirectoryUser,
    User,
)


def company_id_of(user: DirectoryUser) -> str | None:
    return user.attributes.get(ATTR_COMPANY_ID) or None


def build_attributes(
    email: str, company_id: str | None = None, company_name: str | None = None
) -> dict[str, str]:
    """Attributes for a newly provisioned user; e-mail is pre-verified."""
    attributes = {ATTR_EMAIL: email, ATTR_EMAIL_VERIFIED: "true"}
    if company_id:
        attributes[ATTR_COMPANY_ID] = company_id
    if company_name:
        attributes[ATTR_COMPANY_NAME] = company_name
    return attributes


def to_user(record: DirectoryUser, groups: list[str]) -> User:
    attrs = record.attributes
    return User(
        username=record.username,
        email=attrs.get(ATTR_EMAIL),
        email_verified=attrs.get(ATTR_EMAIL_VERIFIED) == "true",
        status=record.status,
        enabled=record.enabled,
        created_at=record.created_at.isoformat() if record.created_at else None,
        groups=groups,
        company_id=attrs.get(ATTR_COMPANY_ID) or None,
        company_name=attrs.get(ATTR_COMPANY_NAME) or None,
    )
