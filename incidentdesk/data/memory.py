"""In-memory data API (AppSync-backed in production)."""

from __future__ import annotations

import copy
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from incidentdesk.data.api import MODEL_FIELDS, DataApi, DataResult

logger = structlog.get_logger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _not_found(model: str, record_id: str) -> list[dict[str, Any]]:
    return [
        {
            "errorType": "DynamoDB:ConditionalCheckFailedException",
            "message": f"{model} {record_id} does not exist",
        }
    ]


class InMemoryDataApi(DataApi):
    """Dict-backed store with the same result shape as the hosted API."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, dict[str, Any]]] = {m: {} for m in MODEL_FIELDS}

    def _table(self, model: str) -> dict[str, dict[str, Any]]:
        return self._tables.setdefault(model, {})

    @staticmethod
    def _project(record: dict[str, Any], selection: Sequence[str] | None) -> dict[str, Any]:
        if not selection:
            return copy.deepcopy(record)
        return {f: copy.deepcopy(record.get(f)) for f in selection}

    async def list_all(
        self, model: str, selection: Sequence[str] | None = None
    ) -> DataResult[list[dict[str, Any]]]:
        return DataResult(data=[self._project(r, selection) for r in self._table(model).values()])

    async def get(
        self, model: str, record_id: str, selection: Sequence[str] | None = None
    ) -> DataResult[dict[str, Any]]:
        record = self._table(model).get(record_id)
        return DataResult(data=self._project(record, selection) if record else None)

    async def create(self, model: str, values: dict[str, Any]) -> DataResult[dict[str, Any]]:
        record_id = values.get("id") or str(uuid.uuid4())
        table = self._table(model)
        if record_id in table:
            return DataResult(
                errors=[
                    {
                        "errorType": "DynamoDB:ConditionalCheckFailedException",
                        "message": f"{model} {record_id} already exists",
                    }
                ]
            )
        now = _now()
        record = {"createdAt": now, **copy.deepcopy(values), "id": record_id, "updatedAt": now}
        table[record_id] = record
        logger.debug("local_record_created", model=model, id=record_id)
        return DataResult(data=copy.deepcopy(record))

    async def update(
        self, model: str, record_id: str, values: dict[str, Any]
    ) -> DataResult[dict[str, Any]]:
        record = self._table(model).get(record_id)
        if record is None:
            return DataResult(errors=_not_found(model, record_id))
        record.update(copy.deepcopy(values))
        record["id"] = record_id
        record["updatedAt"] = _now()
        return DataResult(data=copy.deepcopy(record))

    async def delete(self, model: str, record_id: str) -> DataResult[dict[str, Any]]:
        record = self._table(model).pop(record_id, None)
        if record is None:
            return DataResult(errors=_not_found(model, record_id))
        logger.debug("local_record_deleted", model=model, id=record_id)
        return DataResult(data={"id": record_id})
