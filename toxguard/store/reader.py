"""
Analysis store reader.

All functions take an AsyncSession and return ORM rows detached from any
pending transaction.
"""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from toxguard.db.models import Analysis


async def get_recent_analyses(db: AsyncSession, limit: int = 10) -> list[Analysis]:
    """
    Newest first. created_at can collide for rows written in the same clock
    tick, so the insertion counter breaks ties (later insert first).
    """
    q = (
        select(Analysis)
        .order_by(Analysis.created_at.desc(), Analysis.seq.desc())
        .limit(limit)
    )
    result = await db.execute(q)
    return list(result.scalars().all())

