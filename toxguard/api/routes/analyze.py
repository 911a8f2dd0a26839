"""
POST /analyze — Classify a text for toxicity and store the result.
"""

from fastapi import APIRouter, Depends

from toxguard.db.session import Database, get_database
from toxguard.models.loader import ModelGate, get_model_gate
from toxguard.schemas.analysis import AnalyzeRequest, AnalyzeResponse, LabelScore
from toxguard.services.analysis import AnalysisService

router = APIRouter()


def get_analysis_service(
    gate: ModelGate = Depends(get_model_gate),
    database: Database = Depends(get_database),
) -> AnalysisService:
    return AnalysisService(gate, database)


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Analyze text toxicity",
    description=(
        "Submit a text and receive every toxicity label the model matched at the "
        "given confidence threshold, together with the id of the stored analysis."
    ),
    tags=["Analysis"],
)
async def analyze(
    payload: AnalyzeRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> AnalyzeResponse:
    """
    - Rejects text shorter than 3 characters once trimmed (400)
    - Loads the model on first use
    - Returns matched labels with their positive-class probability
    """
    outcome = await service.analyze(payload.text, payload.threshold)
    return AnalyzeResponse(
        results=[LabelScore(**r) for r in outcome.results],
        analysis_id=outcome.analysis_id,
    )
