"""
ModelGate / ToxicityModel unit tests — load-once semantics and the match rule.
"""

from __future__ import annotations

import asyncio

import pytest

from toxguard.models.loader import ModelGate, ToxicityModel, match_at

from tests.conftest import FakeLoader, FakeScorer


class TestMatchRule:
    """Positive side confident → True, negative side confident → False, else None."""

    @pytest.mark.parametrize(
        ("probability", "threshold", "expected"),
        [
            (0.97, 0.85, True),
            (0.02, 0.85, False),
            (0.50, 0.85, None),
            (0.85, 0.85, None),
            (0.40, 0.30, True),
        ],
    )
    def test_match_at(self, probability, threshold, expected):
        assert match_at(probability, threshold) is expected


class TestModelGate:

    @pytest.mark.anyio
    async def test_concurrent_callers_share_one_load(self):
        release = asyncio.Event()
        loader = FakeLoader(release=release)
        gate = ModelGate(loader)

        callers = [asyncio.create_task(gate.ensure_loaded(0.85)) for _ in range(10)]
        await asyncio.sleep(0)
        assert gate.is_loading
        assert not gate.is_loaded

        release.set()
        models = await asyncio.gather(*callers)

        assert loader.calls == 1
        assert gate.load_count == 1
        assert all(m is models[0] for m in models)
        assert gate.is_loaded

    @pytest.mark.anyio
    async def test_later_calls_reuse_instance_regardless_of_threshold(self):
        loader = FakeLoader()
        gate = ModelGate(loader)

        first = await gate.ensure_loaded(0.5)
        second = await gate.ensure_loaded(0.99)

        assert first is second
        assert first.default_threshold == 0.5
        assert loader.calls == 1

    @pytest.mark.anyio
    async def test_failed_load_is_not_cached(self):
        loader = FakeLoader(fail_times=1)
        gate = ModelGate(loader)

        with pytest.raises(RuntimeError, match="model assets unavailable"):
            await gate.ensure_loaded()
        assert not gate.is_loaded
        assert not gate.is_loading

        model = await gate.ensure_loaded()
        assert model is not None
        assert loader.calls == 2

    @pytest.mark.anyio
    async def test_failure_reaches_every_waiting_caller(self):
        release = asyncio.Event()
        loader = FakeLoader(fail_times=1, release=release)
        gate = ModelGate(loader)

        callers = [asyncio.create_task(gate.ensure_loaded()) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        outcomes = await asyncio.gather(*callers, return_exceptions=True)

        assert all(isinstance(o, RuntimeError) for o in outcomes)
        assert loader.calls == 1

    @pytest.mark.anyio
    async def test_cancelled_caller_does_not_abort_shared_load(self):
        release = asyncio.Event()
        loader = FakeLoader(release=release)
        gate = ModelGate(loader)

        impatient = asyncio.create_task(gate.ensure_loaded())
        patient = asyncio.create_task(gate.ensure_loaded())
        await asyncio.sleep(0)

        impatient.cancel()
        with pytest.raises(asyncio.CancelledError):
            await impatient

        release.set()
        model = await patient
        assert model is not None
        assert gate.is_loaded
        assert loader.calls == 1


class TestToxicityModel:

    @pytest.mark.anyio
    async def test_classify_shapes_predictions_per_label(self):
        model = ToxicityModel(FakeScorer())
        predictions = await model.classify(["you idiot"], 0.85)

        by_label = {p.label: p.results[0] for p in predictions}
        assert len(predictions) == 6
        assert by_label["toxicity"].match is True
        assert by_label["toxicity"].probabilities == pytest.approx((0.03, 0.97))
        assert by_label["obscene"].match is None
        assert by_label["threat"].match is False

    @pytest.mark.anyio
    async def test_threshold_defaults_to_load_threshold(self):
        model = ToxicityModel(FakeScorer(), default_threshold=0.3)
        predictions = await model.classify(["you idiot"])
        assert {p.label for p in predictions if p.results[0].match} == {"toxicity", "insult", "obscene"}

    @pytest.mark.anyio
    async def test_frozen_threshold_ignores_per_call_value(self):
        model = ToxicityModel(FakeScorer(), default_threshold=0.99, freeze_threshold=True)
        predictions = await model.classify(["you idiot"], 0.3)

        assert model.effective_threshold(0.3) == 0.99
        assert not any(p.results[0].match for p in predictions)
