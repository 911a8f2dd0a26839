"""
Model gate — lazy, load-once access to the toxicity classifier.

The first caller of ``ensure_loaded`` starts the load as an asyncio Task;
every caller that arrives while it is pending awaits that same Task, so the
expensive model is loaded at most once per process. A failed load is not
cached: the pending reference is cleared and the next call retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from toxguard.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.85
DETOXIFY_VARIANTS = ("original", "unbiased", "multilingual")


@dataclass
class LabelResult:
    """Outcome for one label on one input text."""

    # True: positive probability above threshold; False: negative above
    # threshold; None: neither side is confident enough.
    match: Optional[bool]
    probabilities: tuple[float, float]


@dataclass
class Prediction:
    label: str
    results: list[LabelResult] = field(default_factory=list)


def match_at(probability: float, threshold: float) -> Optional[bool]:
    if probability > threshold:
        return True
    if 1.0 - probability > threshold:
        return False
    return None


class ToxicityModel:
    """
    Thin wrapper around a scorer that returns ``{label: [score, ...]}`` for a
    list of texts (the shape of ``Detoxify.predict``).
    """

    def __init__(self, scorer: Any, default_threshold: float = DEFAULT_THRESHOLD, freeze_threshold: bool = False) -> None:
        self.scorer = scorer
        self.default_threshold = default_threshold
        self.freeze_threshold = freeze_threshold

    def effective_threshold(self, threshold: Optional[float]) -> float:
        if self.freeze_threshold or threshold is None:
            return self.default_threshold
        return threshold

    async def classify(self, texts: Sequence[str], threshold: Optional[float] = None) -> list[Prediction]:
        """Score ``texts`` in the thread pool and apply the match rule per label."""
        cutoff = self.effective_threshold(threshold)
        raw: dict[str, Sequence[float]] = await run_in_threadpool(self.scorer.predict, list(texts))

        predictions: list[Prediction] = []
        for label, scores in raw.items():
            results = []
            for score in scores:
                p = min(1.0, max(0.0, float(score)))
                results.append(LabelResult(match=match_at(p, cutoff), probabilities=(1.0 - p, p)))
            predictions.append(Prediction(label=label, results=results))
        return predictions


Loader = Callable[[float], Awaitable[ToxicityModel]]


async def load_detoxify(threshold: float = DEFAULT_THRESHOLD) -> ToxicityModel:
    """Build the Detoxify checkpoint configured in settings, off the event loop."""
    from detoxify import Detoxify

    variant = settings.model_variant.strip().lower()
    if variant not in DETOXIFY_VARIANTS:
        logger.warning("Unknown model variant %r — falling back to 'original'.", variant)
        variant = "original"

    scorer = await asyncio.to_thread(Detoxify, variant)
    return ToxicityModel(scorer, default_threshold=threshold, freeze_threshold=settings.freeze_threshold_on_load)


class ModelGate:
    """Process-wide holder of the single ToxicityModel instance."""

    def __init__(self, loader: Loader = load_detoxify) -> None:
        self._loader = loader
        self._model: ToxicityModel | None = None
        self._pending: asyncio.Task[ToxicityModel] | None = None
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def is_loading(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def ensure_loaded(self, threshold: float = DEFAULT_THRESHOLD) -> ToxicityModel:
        """Return the loaded model, starting or joining the single load if needed."""
        if self._model is not None:
            return self._model

        # No await between the check and the assignment: concurrent callers
        # always see the pending task created by the first one.
        if self._pending is None:
            self._pending = asyncio.create_task(self._load(threshold))

        # shield() keeps a cancelled request from cancelling the shared load
        return await asyncio.shield(self._pending)

    async def _load(self, threshold: float) -> ToxicityModel:
        self.load_count += 1
        logger.info("Loading toxicity model (threshold=%.2f)…", threshold)
        t0 = time.perf_counter()
        try:
            model = await self._loader(threshold)
        except Exception as exc:
            logger.warning("Model load failed (%s) — next request will retry.", exc)
            raise
        finally:
            self._pending = None

        self._model = model
        logger.info("Model loaded in %.1fms.", (time.perf_counter() - t0) * 1000)
        return model


def get_model_gate(request: Request) -> ModelGate:
    """FastAPI dependency — the ModelGate owned by the running app."""
    return request.app.state.model_gate
