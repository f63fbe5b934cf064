"""AppSync GraphQL implementation of the hosted data API."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from incidentdesk.data.api import MODEL_FIELDS, DataApi, DataResult

logger = structlog.get_logger(__name__)

_PAGE_SIZE = 1000


class AppSyncDataApi(DataApi):
    """Sends generated GraphQL operations to an AppSync endpoint.

    Transport failures and non-2xx responses raise ``httpx.HTTPError``;
    GraphQL-level failures come back as ``DataResult.errors``.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["x-api-key"] = api_key
        self._timeout = timeout
        self._transport = transport

    async def _execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                self._endpoint,
                json={"query": query, "variables": variables},
                headers=self._headers,
            )
            resp.raise_for_status()
            body: dict[str, Any] = resp.json()
        if body.get("errors"):
            logger.warning("graphql_errors", errors=body["errors"])
        return body

    @staticmethod
    def _fields(model: str, selection: Sequence[str] | None) -> str:
        return " ".join(selection or MODEL_FIELDS[model])

    async def list_all(
        self, model: str, selection: Sequence[str] | None = None
    ) -> DataResult[list[dict[str, Any]]]:
        op = f"list{model}s"
        query = (
            f"query List{model}s($limit: Int, $nextToken: String) {{ "
            f"{op}(limit: $limit, nextToken: $nextToken) {{ "
            f"items {{ {self._fields(model, selection)} }} nextToken }} }}"
        )
        items: list[dict[str, Any]] = []
        next_token: str | None = None
        while True:
            body = await self._execute(query, {"limit": _PAGE_SIZE, "nextToken": next_token})
            if body.get("errors"):
                return DataResult(errors=body["errors"])
            page = (body.get("data") or {}).get(op) or {}
            items.extend(i for i in page.get("items", []) if i is not None)
            next_token = page.get("nextToken")
            if not next_token:
                break
        logger.debug("graphql_list", model=model, count=len(items))
        return DataResult(data=items)

    async def get(
        self, model: str, record_id: str, selection: Sequence[str] | None = None
    ) -> DataResult[dict[str, Any]]:
        op = f"get{model}"
        query = (
            f"query Get{model}($id: ID!) {{ "
            f"{op}(id: $id) {{ {self._fields(model, selection)} }} }}"
        )
        body = await self._execute(query, {"id": record_id})
        if body.get("errors"):
            return DataResult(errors=body["errors"])
        return DataResult(data=(body.get("data") or {}).get(op))

    async def _mutate(
        self, kind: str, model: str, values: dict[str, Any], fields: str
    ) -> DataResult[dict[str, Any]]:
        op = f"{kind}{model}"
        input_type = f"{kind.capitalize()}{model}Input"
        query = (
            f"mutation {kind.capitalize()}{model}($input: {input_type}!) {{ "
            f"{op}(input: $input) {{ {fields} }} }}"
        )
        body = await self._execute(query, {"input": values})
        if body.get("errors"):
            return DataResult(errors=body["errors"])
        return DataResult(data=(body.get("data") or {}).get(op))

    async def create(self, model: str, values: dict[str, Any]) -> DataResult[dict[str, Any]]:
        return await self._mutate("create", model, values, self._fields(model, None))

    async def update(
        self, model: str, record_id: str, values: dict[str, Any]
    ) -> DataResult[dict[str, Any]]:
        return await self._mutate(
            "update", model, {**values, "id": record_id}, self._fields(model, None)
        )

    async def delete(self, model: str, record_id: str) -> DataResult[dict[str, Any]]:
        return await self._mutate("delete", model, {"id": record_id}, "id")
