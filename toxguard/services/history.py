"""History service — read-only access to the most recent analyses."""

from __future__ import annotations

from typing import TYPE_CHECKING

from toxguard.core.config import settings
from toxguard.core.errors import StoreError
from toxguard.store.reader import get_recent_analyses

if TYPE_CHECKING:
    from toxguard.db.models import Analysis
    from toxguard.db.session import Database


class HistoryService:
    def __init__(self, database: "Database", max_limit: int | None = None) -> None:
        self.database = database
        self.max_limit = settings.history_limit if max_limit is None else max_limit

    async def list_recent(self, limit: int | None = None) -> "list[Analysis]":
        limit = self.max_limit if limit is None else max(1, min(limit, self.max_limit))
        try:
            async with self.database.session() as db:
                return await get_recent_analyses(db, limit)
        except Exception as exc:
            raise StoreError(str(exc)) from exc
