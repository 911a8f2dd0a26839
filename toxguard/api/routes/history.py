"""
GET /history — Most recent analyses, newest first.
"""

from fastapi import APIRouter, Depends

from toxguard.db.session import Database, get_database
from toxguard.schemas.analysis import AnalysisRecordOut
from toxguard.services.history import HistoryService

router = APIRouter()


@router.get(
    "/history",
    response_model=list[AnalysisRecordOut],
    summary="Recent analyses",
    tags=["Analysis"],
)
async def history(database: Database = Depends(get_database)) -> list[AnalysisRecordOut]:
    records = await HistoryService(database).list_recent()
    return [AnalysisRecordOut.model_validate(r) for r in records]
