"""Enums and type aliases for incidentdesk."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class Role(StrEnum):
    """Directory groups, declared highest precedence first."""

    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    INCIDENT_REPORTER = "IncidentReporter"
    CUSTOMER = "Customer"

    @property
    def precedence(self) -> int:
        return list(Role).index(self)

    @classmethod
    def parse(cls, value: str) -> Role | None:
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def resolve(cls, groups: Iterable[str]) -> Role:
        """Return the single effective role for a set of group memberships.

        Unknown group names are ignored; no known group means Customer.
        """
        known = [role for role in (cls.parse(g) for g in groups) if role is not None]
        if not known:
            return cls.CUSTOMER
        return min(known, key=lambda role: role.precedence)


class ReportStatus(StrEnum):
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"


class AdminAction(StrEnum):
    LIST_USERS = "listUsers"
    CREATE_USER = "createUser"
    DELETE_USER = "deleteUser"


class AnalysisState(StrEnum):
    PENDING = "pending"
    FAILED = "failed"


GROUP_DESCRIPTIONS: dict[Role, str] = {
    Role.SUPER_ADMIN: "Global administrators with access to all companies",
    Role.ADMIN: "Company administrators",
    Role.INCIDENT_REPORTER: "Can report incidents",
    Role.CUSTOMER: "Read-only access",
}
