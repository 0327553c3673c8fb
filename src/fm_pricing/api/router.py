"""fm_pricing REST endpoints.

GET  /rates/quote                    — price breakdown for a trip
GET  /rates/benchmark/{equipment}    — benchmark in effect for one equipment type
GET  /rates/benchmarks               — all benchmarks (stored over defaults)
POST /rates/benchmark                — set one benchmark (admin)
POST /rates/benchmarks/bulk          — set many benchmarks (admin)
"""

from datetime import date
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.database import get_db_session
from src.fm_common.enums import LoadType
from src.fm_common.response import ApiResponse, success_response
from src.fm_gateway.auth.context import CallerContext
from src.fm_gateway.auth.dependencies import get_caller_context, require_admin
from src.fm_pricing.application.schemas import (
    BulkSetBenchmarksRequest,
    QuoteRequest,
    SetBenchmarkRequest,
)
from src.fm_pricing.application.service import PricingApplicationService

router = APIRouter(prefix="/rates", tags=["rates"])

_service = PricingApplicationService()


@router.get("/quote")
async def get_quote(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    distance_miles: Decimal = Query(..., gt=0),
    load_type: LoadType = Query(LoadType.STANDARD),
    equipment: str | None = Query(None, max_length=64),
    is_backhaul_saver: bool = Query(False),
) -> ApiResponse:
    req = QuoteRequest(
        distance_miles=distance_miles,
        load_type=load_type,
        equipment=equipment,
        is_backhaul_saver=is_backhaul_saver,
    )
    result = await _service.get_quote(db, req)
    return success_response(result.model_dump(), request)


@router.get("/benchmark/{equipment}")
async def get_benchmark(
    equipment: str,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    on_date: date | None = Query(None, alias="date"),
) -> ApiResponse:
    result = await _service.get_benchmark(db, equipment, on_date)
    return success_response(result.model_dump(), request)


@router.get("/benchmarks")
async def list_benchmarks(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    on_date: date | None = Query(None, alias="date"),
) -> ApiResponse:
    result = await _service.list_benchmarks(db, on_date)
    return success_response(result.model_dump(), request)


@router.post("/benchmark", status_code=201)
async def set_benchmark(
    body: SetBenchmarkRequest,
    request: Request,
    caller: Annotated[CallerContext, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.set_benchmark(db, body, caller)
    return success_response(result.model_dump(), request)


@router.post("/benchmarks/bulk")
async def bulk_set_benchmarks(
    body: BulkSetBenchmarksRequest,
    request: Request,
    caller: Annotated[CallerContext, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.bulk_set_benchmarks(db, body, caller)
    return success_response(result.model_dump(), request)
