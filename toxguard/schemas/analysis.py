"""
Pydantic schemas for request validation and response serialization.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalyzeRequest(BaseModel):
    """
    Text submitted for toxicity analysis.
    ``text`` is optional at the schema level so that a missing or too-short
    value is reported by the analysis service with a single, consistent
    400 message.
    """

    model_config = {"json_schema_extra": {"example": {
        "text": "You are wonderful",
        "threshold": 0.85,
    }}}

    text: Optional[str] = Field(None, description="Text to classify (at least 3 characters once trimmed)")
    threshold: Optional[float] = Field(None, ge=0.0, le=1.0, description="Confidence cutoff; defaults to 0.85")


class LabelScore(BaseModel):
    label: str
    probability: float = Field(..., ge=0.0, le=1.0)


class AnalyzeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    results: list[LabelScore]
    analysis_id: str = Field(..., alias="analysisId")


class AnalysisRecordOut(BaseModel):
    """A persisted analysis as returned by GET /history."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    text: str
    results: list[LabelScore]
    threshold: float
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops the offset; rows are always written in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    status: str
    db_state: str = Field(..., alias="dbState")
    model_loaded: bool = Field(..., alias="modelLoaded")
