"""fm_matching REST endpoints.

GET /matching/loads/{load_id}/matches — ranked drivers for a load (shipper/admin)
GET /matching/stats                   — marketplace matching counters (admin)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.database import get_db_session
from src.fm_common.response import ApiResponse, success_response
from src.fm_gateway.auth.context import CallerContext
from src.fm_gateway.auth.dependencies import get_caller_context, require_admin
from src.fm_matching.application.schemas import MatchQuery
from src.fm_matching.application.service import MatchingApplicationService

router = APIRouter(prefix="/matching", tags=["matching"])

_service = MatchingApplicationService()


@router.get("/loads/{load_id}/matches")
async def find_matches(
    load_id: str,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    max_results: int = Query(20, ge=1, le=50),
    include_wider_matches: bool = Query(False),
    max_deadhead_miles: float = Query(100.0, gt=0, le=1000),
    max_detour_miles: float = Query(75.0, ge=0, le=1000),
    min_score: int = Query(30, ge=0, le=100),
) -> ApiResponse:
    query = MatchQuery(
        max_results=max_results,
        include_wider_matches=include_wider_matches,
        max_deadhead_miles=max_deadhead_miles,
        max_detour_miles=max_detour_miles,
        min_score=min_score,
    )
    result = await _service.find_matches(db, load_id, query.to_options(), caller)
    return success_response(result.model_dump(), request)


@router.get("/stats")
async def get_matching_stats(
    request: Request,
    caller: Annotated[CallerContext, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_stats(db, caller)
    return success_response(result.model_dump(), request)
