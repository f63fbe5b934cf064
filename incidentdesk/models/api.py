"""Request bodies accepted by the JSON routes (camelCase on the wire)."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from incidentdesk.exceptions import ValidationError
from incidentdesk.types import ReportStatus

NonEmpty = Annotated[str, Field(min_length=1)]


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def values(self) -> dict[str, Any]:
        """Fields the caller actually sent, in wire (camelCase) form."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


class _Patch(_Body):
    """PATCH body: any subset of fields; ``id`` is ignored, nothing at all is an error."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def values(self) -> dict[str, Any]:
        changes = self.model_dump(by_alias=True, exclude_unset=True)
        changes.pop("id", None)
        if not changes:
            raise ValidationError("No fields to update")
        return changes


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class CreateUserRequest(_Body):
    email: NonEmpty
    group: NonEmpty
    temp_password: str | None = None
    company_id: str | None = None
    company_name: str | None = None


class DeleteUserRequest(_Body):
    username: NonEmpty


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


class CreateCompanyRequest(_Body):
    name: NonEmpty
    domain: str | None = None
    logo_url: str | None = None
    settings: Any = None
    max_users: int | None = None


class UpdateCompanyRequest(_Patch):
    id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    domain: str | None = None
    logo_url: str | None = None
    settings: Any = None
    max_users: int | None = None
    is_active: bool | None = None


# ---------------------------------------------------------------------------
# Incident reports
# ---------------------------------------------------------------------------


class _ReportFields(_Body):
    apartment: str | None = None
    shingle_exposure: str | None = None
    photo_urls: list[str] | None = None
    company_id: str | None = None
    company_name: str | None = None
    submitted_by: str | None = None


class CreateReportRequest(_ReportFields):
    claim_number: NonEmpty
    first_name: NonEmpty
    last_name: NonEmpty
    phone: NonEmpty
    email: NonEmpty
    address: NonEmpty
    city: NonEmpty
    state: NonEmpty
    zip: NonEmpty
    incident_date: NonEmpty
    description: NonEmpty


class PublicReportRequest(_ReportFields):
    company_id: NonEmpty
    claim_number: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    incident_date: str | None = None
    description: str | None = None


class UpdateReportRequest(_Patch):
    id: str | None = None
    claim_number: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    apartment: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    incident_date: str | None = None
    description: str | None = None
    shingle_exposure: str | None = None
    photo_urls: list[str] | None = None
    status: ReportStatus | None = None
    ai_analysis: str | None = None

    def values(self) -> dict[str, Any]:
        changes = super().values()
        if "status" in changes:
            if changes["status"] is None:
                raise ValidationError("status cannot be null")
            changes["status"] = ReportStatus(changes["status"]).value
        return changes
