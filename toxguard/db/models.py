"""SQLAlchemy ORM models."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Analysis(Base):
    """
    One persisted classification. Append-only: never updated or deleted.
    id and timestamps are assigned by store.writer.persist_analysis.
    """

    __tablename__ = "analyses"

    # Insertion counter — breaks ties when two rows share created_at
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    results: Mapped[list] = mapped_column(JSON, nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_analyses_created_at_seq", "created_at", "seq"),
    )

    def __repr__(self) -> str:
        return f"<Analysis id={self.id} labels={len(self.results or [])}>"
