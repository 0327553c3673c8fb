"""Pydantic schemas for fm_offer API."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from config.settings import settings
from src.fm_common.enums import OfferAction
from src.fm_offer.domain.models import Offer, OfferBatch, OfferConflict

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateOffersRequest(BaseModel):
    driver_ids: list[str] = Field(..., min_length=1)
    expires_in_minutes: int = Field(
        default_factory=lambda: settings.OFFER_DEFAULT_EXPIRES_MINUTES, ge=1, le=1440
    )

    @field_validator("driver_ids")
    @classmethod
    def _dedupe(cls, v: list[str]) -> list[str]:
        # Order-preserving; blank ids dropped
        ids = list(dict.fromkeys(d.strip() for d in v if d and d.strip()))
        if not ids:
            raise ValueError("driver_ids must contain at least one driver id")
        return ids


class RespondToOfferRequest(BaseModel):
    action: OfferAction
    counter_amount: Decimal | None = Field(None, max_digits=10, decimal_places=2)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OfferResponse(BaseModel):
    id: str
    load_id: str
    driver_id: str
    offer_amount: Decimal
    driver_payout: Decimal
    match_score: int | None
    deadhead_miles: float | None
    status: str
    counter_amount: Decimal | None
    expires_at: str
    responded_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, o: Offer) -> "OfferResponse":
        return cls(
            id=o.id,
            load_id=o.load_id,
            driver_id=o.driver_id,
            offer_amount=o.offer_amount,
            driver_payout=o.driver_payout,
            match_score=o.match_score,
            deadhead_miles=o.deadhead_miles,
            status=o.status.value,
            counter_amount=o.counter_amount,
            expires_at=o.expires_at.isoformat(),
            responded_at=o.responded_at.isoformat() if o.responded_at else None,
            created_at=o.created_at.isoformat() if o.created_at else None,
        )


class OfferConflictItem(BaseModel):
    driver_id: str
    code: str
    existing_offer_id: str | None

    @classmethod
    def from_domain(cls, c: OfferConflict) -> "OfferConflictItem":
        return cls(driver_id=c.driver_id, code=c.code, existing_offer_id=c.existing_offer_id)


class OfferBatchResponse(BaseModel):
    load_id: str
    offers: list[OfferResponse]
    conflicts: list[OfferConflictItem]
    expires_at: str

    @classmethod
    def from_domain(cls, b: OfferBatch) -> "OfferBatchResponse":
        return cls(
            load_id=b.load_id,
            offers=[OfferResponse.from_domain(o) for o in b.offers],
            conflicts=[OfferConflictItem.from_domain(c) for c in b.conflicts],
            expires_at=b.expires_at.isoformat(),
        )


class OfferListResponse(BaseModel):
    items: list[OfferResponse]


class RespondToOfferResponse(BaseModel):
    offer: OfferResponse
    load_status: str | None = None
    expired_offers: int = 0
