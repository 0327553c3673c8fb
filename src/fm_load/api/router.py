"""fm_load REST endpoints.

POST /loads                      — post a load (shipper)
GET  /loads/{load_id}            — load detail
PUT  /loads/{load_id}/status     — status transition (shipper / assigned driver)
POST /loads/{load_id}/cancel     — cancel before pickup
POST /loads/{load_id}/book       — book-now direct acceptance (driver)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.database import get_db_session
from src.fm_common.response import ApiResponse, success_response
from src.fm_gateway.auth.context import CallerContext
from src.fm_gateway.auth.dependencies import get_caller_context
from src.fm_load.application.schemas import CreateLoadRequest, TransitionStatusRequest
from src.fm_load.application.service import LoadApplicationService

router = APIRouter(prefix="/loads", tags=["loads"])

_service = LoadApplicationService()


@router.post("", status_code=201)
async def create_load(
    body: CreateLoadRequest,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_load(db, body, caller)
    return success_response(result.model_dump(), request)


@router.get("/{load_id}")
async def get_load(
    load_id: str,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_load(db, load_id, caller)
    return success_response(result.model_dump(), request)


@router.put("/{load_id}/status")
async def transition_load_status(
    load_id: str,
    body: TransitionStatusRequest,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.transition_load_status(db, load_id, body.status, caller)
    return success_response(result.model_dump(), request)


@router.post("/{load_id}/cancel")
async def cancel_load(
    load_id: str,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cancel_load(db, load_id, caller)
    return success_response(result.model_dump(), request)


@router.post("/{load_id}/book")
async def book_load(
    load_id: str,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.book_load(db, load_id, caller)
    return success_response(result.model_dump(), request)
