"""
Analysis store writer.

persist_analysis() appends one AnalysisRecord in its own transaction. Rows
are never updated afterwards, so created_at and updated_at stay equal.
"""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from toxguard.db.models import Analysis


def _now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


async def persist_analysis(
    db: AsyncSession,
    text: str,
    results: list[dict],
    threshold: float,
) -> Analysis:
    now = _now_utc()
    record = Analysis(
        id=str(uuid4()),
        text=text,
        results=results,
        threshold=threshold,
        created_at=now,
        updated_at=now,
    )
    async with db.begin():
        db.add(record)
    return record
