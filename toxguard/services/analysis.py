"""
Analysis service.
Validates text, runs the toxicity model through the ModelGate, keeps only the
matched labels and stores the outcome.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from toxguard.core.config import settings
from toxguard.core.errors import AnalysisError, ValidationError
from toxguard.store.writer import persist_analysis

if TYPE_CHECKING:
    from toxguard.db.session import Database
    from toxguard.models.loader import ModelGate, Prediction

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    results: list[dict]
    analysis_id: str


def matched_labels(predictions: "list[Prediction]") -> list[dict]:
    """
    Keep labels whose match flag is True for the (single) input text and
    report the positive-class probability for each.
    """
    return [
        {"label": p.label, "probability": float(p.results[0].probabilities[1])}
        for p in predictions
        if p.results and p.results[0].match is True
    ]


class AnalysisService:
    def __init__(self, gate: "ModelGate", database: "Database", min_text_length: int | None = None) -> None:
        self.gate = gate
        self.database = database
        self.min_text_length = settings.min_text_length if min_text_length is None else min_text_length

    def validate(self, text: Optional[str]) -> str:
        """Return the trimmed text or raise ValidationError."""
        trimmed = text.strip() if isinstance(text, str) else ""
        if len(trimmed) < self.min_text_length:
            raise ValidationError(f"Text must be at least {self.min_text_length} characters")
        return trimmed

    async def analyze(self, text: Optional[str], threshold: Optional[float] = None) -> AnalysisOutcome:
        trimmed = self.validate(text)
        threshold = settings.default_threshold if threshold is None else threshold
        t0 = time.perf_counter()

        try:
            model = await self.gate.ensure_loaded(threshold)
            predictions = await model.classify([trimmed], threshold)
            results = matched_labels(predictions)

            async with self.database.session() as db:
                record = await persist_analysis(
                    db,
                    text=text,
                    results=results,
                    threshold=model.effective_threshold(threshold),
                )
        except Exception as exc:
            raise AnalysisError(str(exc)) from exc

        logger.info(
            "Analysis %s: %d/%d labels matched threshold=%.2f latency=%.1fms",
            record.id,
            len(results),
            len(predictions),
            threshold,
            (time.perf_counter() - t0) * 1000,
        )
        return AnalysisOutcome(results=results, analysis_id=record.id)
