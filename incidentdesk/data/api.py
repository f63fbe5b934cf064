"""Abstract hosted data API interface for Company and IncidentReport records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from incidentdesk.exceptions import DataApiError

if TYPE_CHECKING:
    from incidentdesk.config.settings import Settings

T = TypeVar("T")

COMPANY = "Company"
INCIDENT_REPORT = "IncidentReport"

MODEL_FIELDS: dict[str, tuple[str, ...]] = {
    COMPANY: (
        "id",
        "name",
        "domain",
        "logoUrl",
        "settings",
        "maxUsers",
        "isActive",
        "createdAt",
        "updatedAt",
    ),
    INCIDENT_REPORT: (
        "id",
        "claimNumber",
        "companyId",
        "companyName",
        "firstName",
        "lastName",
        "phone",
        "email",
        "address",
        "apartment",
        "city",
        "state",
        "zip",
        "incidentDate",
        "description",
        "shingleExposure",
        "photoUrls",
        "status",
        "submittedAt",
        "submittedBy",
        "aiAnalysis",
        "createdAt",
        "updatedAt",
    ),
}


@dataclass(frozen=True, slots=True)
class DataResult(Generic[T]):
    """Either a record (or list of records) or the API's error list."""

    data: T | None = None
    errors: list[dict[str, Any]] | None = None

    def unwrap(self, what: str) -> T | None:
        """Return ``data`` or raise DataApiError carrying the error list."""
        if self.errors:
            raise DataApiError(f"Failed to {what}", details=self.errors)
        return self.data


class DataApi(ABC):
    """Structured-data service exposing list/get/create/update/delete per model."""

    @abstractmethod
    async def list_all(
        self, model: str, selection: Sequence[str] | None = None
    ) -> DataResult[list[dict[str, Any]]]:
        """Return every record of ``model``, restricted to ``selection`` fields."""

    @abstractmethod
    async def get(
        self, model: str, record_id: str, selection: Sequence[str] | None = None
    ) -> DataResult[dict[str, Any]]:
        """Return one record, or ``data=None`` when it does not exist."""

    @abstractmethod
    async def create(self, model: str, values: dict[str, Any]) -> DataResult[dict[str, Any]]:
        """Create a record and return it."""

    @abstractmethod
    async def update(
        self, model: str, record_id: str, values: dict[str, Any]
    ) -> DataResult[dict[str, Any]]:
        """Apply ``values`` to an existing record and return it."""

    @abstractmethod
    async def delete(self, model: str, record_id: str) -> DataResult[dict[str, Any]]:
        """Delete a record."""


def create_data_api(settings: Settings) -> DataApi:
    """Factory: create the appropriate DataApi based on settings."""
    if settings.use_aws:
        from incidentdesk.data.appsync import AppSyncDataApi

        return AppSyncDataApi(
            endpoint=settings.data_api_url or "",
            api_key=settings.data_api_key,
        )

    from incidentdesk.data.memory import InMemoryDataApi

    return InMemoryDataApi()
