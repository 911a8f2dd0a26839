"""
GET /health — Liveness and readiness check.
"""

from fastapi import APIRouter, Depends

from toxguard.db.session import Database, get_database
from toxguard.models.loader import ModelGate, get_model_gate
from toxguard.schemas.analysis import HealthResponse

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="API health check",
    description="Returns process status, live database connection state and model load state.",
    tags=["Health"],
)
async def health(
    database: Database = Depends(get_database),
    gate: ModelGate = Depends(get_model_gate),
) -> HealthResponse:
    """Always 200 — a degraded database shows up in dbState, not as an error."""
    db_state = await database.check()
    return HealthResponse(
        status="OK",
        db_state=db_state.value,
        model_loaded=gate.is_loaded,
    )
