# src/task_sync/sync/api.py

"""
Transport-agnostic request handlers for the sync endpoints.

Each handler takes the decoded request payload (JSON body or query params)
and returns an ApiResponse carrying an HTTP-style status code and a JSON-ready body.
Mounting them on an actual HTTP server is left to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..core.ports import CursorRepo, TaskRecordRepo
from ..errors import ValidationError
from .dto import (
    cursor_to_dto,
    now_iso,
    parse_timestamp,
    record_to_dto,
    source_count_to_dto,
)
from .export import SyncExport
from .ingest import SyncIngest, parse_source
from .models import SyncSource

logger = logging.getLogger(__name__)

CLEAR_CONFIRM_TOKEN = "CLEAR_SYNC_DATA"


@dataclass(frozen=True, slots=True)
class ApiResponse:
    status_code: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _bad_request(message: str) -> ApiResponse:
    return ApiResponse(400, {"error": "Bad Request", "message": message})


def _server_error(message: str) -> ApiResponse:
    return ApiResponse(500, {"error": "Internal Server Error", "message": message})


def _optional_source(raw: Any) -> SyncSource | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return parse_source(raw)


class SyncApi:
    def __init__(
        self,
        *,
        ingest: SyncIngest,
        export: SyncExport,
        store: TaskRecordRepo,
        cursors: CursorRepo,
    ) -> None:
        self._ingest = ingest
        self._export = export
        self._store = store
        self._cursors = cursors

    def handle_push(self, body: Mapping[str, Any] | None) -> ApiResponse:
        """POST /push  {source, tasks=[], timestamp?}"""
        body = body or {}
        if not isinstance(body, Mapping):
            return _bad_request("Request body must be a JSON object")

        source = body.get("source")
        if not source:
            return _bad_request("Source is required (vault, extension or server)")

        tasks = body.get("tasks")
        if tasks is None:
            tasks = []
        if not isinstance(tasks, list):
            return _bad_request("tasks must be a list")

        try:
            result = self._ingest.push(source, tasks)
        except ValidationError as e:
            return _bad_request(str(e))
        except Exception:
            logger.exception("Sync push failed source=%s", source)
            return _server_error("Failed to push sync data")

        return ApiResponse(
            200,
            {"success": True, "message": "Data pushed successfully", "data": result.to_dict()},
        )

    def handle_pull(self, query: Mapping[str, Any] | None) -> ApiResponse:
        """GET /pull  ?source=&since="""
        query = query or {}
        raw_since = query.get("since") or None
        try:
            source = _optional_source(query.get("source"))
            since = parse_timestamp(raw_since)
        except ValidationError as e:
            return _bad_request(str(e))
        except ValueError as e:
            return _bad_request(f"since: {e}")

        try:
            records = self._export.pull(source, since)
        except Exception:
            logger.exception("Sync pull failed source=%s since=%s", source, raw_since)
            return _server_error("Failed to pull sync data")

        data = [record_to_dto(r) for r in records]
        return ApiResponse(
            200,
            {
                "success": True,
                "data": data,
                "metadata": {"count": len(data), "since": raw_since, "timestamp": now_iso()},
            },
        )

    def handle_status(self, query: Mapping[str, Any] | None = None) -> ApiResponse:
        """GET /status  ?source="""
        query = query or {}
        try:
            source = _optional_source(query.get("source"))
        except ValidationError as e:
            return _bad_request(str(e))

        try:
            cursors = self._cursors.list(source)
            counts = self._store.count_by_source()
        except Exception:
            logger.exception("Sync status failed")
            return _server_error("Failed to get sync status")

        return ApiResponse(
            200,
            {
                "success": True,
                "data": {
                    "syncMetadata": [cursor_to_dto(c) for c in cursors],
                    "taskCounts": [source_count_to_dto(c) for c in counts],
                    "serverTime": now_iso(),
                },
            },
        )

    def handle_clear(self, body: Mapping[str, Any] | None) -> ApiResponse:
        """DELETE /clear  {source?, confirm}  (administrative / tests only)"""
        body = body or {}
        if not isinstance(body, Mapping) or body.get("confirm") != CLEAR_CONFIRM_TOKEN:
            return _bad_request(f'Must provide confirm: "{CLEAR_CONFIRM_TOKEN}" to clear sync data')

        try:
            source = _optional_source(body.get("source"))
        except ValidationError as e:
            return _bad_request(str(e))

        try:
            deleted_tasks = self._store.delete_by_source(source)
            deleted_cursors = self._cursors.delete(source)
        except Exception:
            logger.exception("Sync clear failed source=%s", source)
            return _server_error("Failed to clear sync data")

        logger.warning(
            "Cleared sync data source=%s tasks=%d cursors=%d",
            source.value if source else "*",
            deleted_tasks,
            deleted_cursors,
        )
        message = f"Cleared sync data for {source.value}" if source else "Cleared all sync data"
        return ApiResponse(
            200,
            {
                "success": True,
                "message": message,
                "data": {"deletedTasks": deleted_tasks, "deletedCursors": deleted_cursors},
            },
        )
