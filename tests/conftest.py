"""
Shared pytest fixtures.

The toxicity model is replaced by FakeScorer (same output shape as
Detoxify.predict) and every test gets its own SQLite file under tmp_path.
"""

from __future__ import annotations

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from toxguard.core.config import Settings
from toxguard.db.models import Analysis
from toxguard.db.session import Database
from toxguard.main import create_app
from toxguard.models.loader import ModelGate, ToxicityModel

LABELS = (
    "toxicity",
    "severe_toxicity",
    "obscene",
    "threat",
    "insult",
    "identity_attack",
)

CLEAN_SCORES = {label: 0.02 for label in LABELS}

# obscene sits in the "not confident either way" band at 0.85
TOXIC_SCORES = {
    "toxicity": 0.97,
    "severe_toxicity": 0.05,
    "obscene": 0.40,
    "threat": 0.01,
    "insult": 0.93,
    "identity_attack": 0.02,
}


class FakeScorer:
    """Scores any text containing 'idiot' as toxic, everything else as clean."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def predict(self, texts: list[str]) -> dict[str, list[float]]:
        self.calls.append(list(texts))
        out: dict[str, list[float]] = {label: [] for label in LABELS}
        for text in texts:
            scores = TOXIC_SCORES if "idiot" in text.lower() else CLEAN_SCORES
            for label in LABELS:
                out[label].append(scores[label])
        return out


class FakeLoader:
    """
    Async loader with the ModelGate loader signature.

    ``release`` holds every load until set; ``fail_times`` makes the first N
    loads raise.
    """

    def __init__(self, scorer: FakeScorer | None = None, fail_times: int = 0, release: asyncio.Event | None = None) -> None:
        self.scorer = scorer or FakeScorer()
        self.fail_times = fail_times
        self.release = release
        self.calls = 0

    async def __call__(self, threshold: float) -> ToxicityModel:
        self.calls += 1
        if self.release is not None:
            await self.release.wait()
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("model assets unavailable")
        return ToxicityModel(self.scorer, default_threshold=threshold)


def sqlite_url(tmp_path, name: str = "toxguard-test.db") -> str:
    return f"sqlite+aiosqlite:///{tmp_path / name}"


async def count_analyses(database: Database) -> int:
    async with database.session() as db:
        result = await db.execute(select(func.count()).select_from(Analysis))
        return int(result.scalar_one())


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(rate_limit_max=1000, expose_error_details=False, preload_model=False)


@pytest.fixture
async def database(tmp_path):
    db = Database(sqlite_url(tmp_path))
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def loader() -> FakeLoader:
    return FakeLoader()


@pytest.fixture
def gate(loader) -> ModelGate:
    return ModelGate(loader)


@pytest.fixture
def app(test_settings, database, gate):
    return create_app(test_settings, database=database, model_gate=gate)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
