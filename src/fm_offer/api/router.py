"""fm_offer REST endpoints.

POST /offers/loads/{load_id}      — send offers to drivers (load's shipper)
GET  /offers/loads/{load_id}      — offers sent for a load (load's shipper)
GET  /offers                      — caller's received offers (driver)
GET  /offers/{offer_id}           — offer detail
POST /offers/{offer_id}/respond   — accept / decline / counter (offer's driver)

Every read reports the effective status: a pending offer past its expiry
is returned as expired.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.database import get_db_session
from src.fm_common.enums import OfferStatus
from src.fm_common.response import ApiResponse, success_response
from src.fm_gateway.auth.context import CallerContext
from src.fm_gateway.auth.dependencies import get_caller_context
from src.fm_offer.application.schemas import CreateOffersRequest, RespondToOfferRequest
from src.fm_offer.application.service import OfferApplicationService

router = APIRouter(prefix="/offers", tags=["offers"])

_service = OfferApplicationService()


@router.post("/loads/{load_id}", status_code=201)
async def create_offers(
    load_id: str,
    body: CreateOffersRequest,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_offers(db, load_id, body, caller)
    return success_response(result.model_dump(), request)


@router.get("/loads/{load_id}")
async def list_offers_for_load(
    load_id: str,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: OfferStatus | None = Query(None),
) -> ApiResponse:
    result = await _service.list_offers_for_load(db, load_id, caller, status)
    return success_response(result.model_dump(), request)


@router.get("")
async def list_my_offers(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: OfferStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await _service.list_offers_for_driver(db, caller, status, limit)
    return success_response(result.model_dump(), request)


@router.get("/{offer_id}")
async def get_offer(
    offer_id: str,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_offer(db, offer_id, caller)
    return success_response(result.model_dump(), request)


@router.post("/{offer_id}/respond")
async def respond_to_offer(
    offer_id: str,
    body: RespondToOfferRequest,
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.respond_to_offer(db, offer_id, body, caller)
    return success_response(result.model_dump(), request)
