"""Pydantic schemas for fm_load API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from src.fm_common.enums import LoadStatus, LoadType
from src.fm_common.money import money_to_display
from src.fm_load.domain.models import Load

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateLoadRequest(BaseModel):
    description: str | None = Field(None, max_length=2000)
    pickup_address: str | None = Field(None, max_length=500)
    pickup_city: str | None = Field(None, max_length=100)
    pickup_state: str | None = Field(None, max_length=2)
    pickup_lat: float | None = Field(None, ge=-90, le=90)
    pickup_lng: float | None = Field(None, ge=-180, le=180)
    delivery_address: str | None = Field(None, max_length=500)
    delivery_city: str | None = Field(None, max_length=100)
    delivery_state: str | None = Field(None, max_length=2)
    delivery_lat: float | None = Field(None, ge=-90, le=90)
    delivery_lng: float | None = Field(None, ge=-180, le=180)
    pickup_window_start: datetime | None = None
    pickup_window_end: datetime | None = None
    delivery_window_end: datetime | None = None
    distance_miles: Decimal | None = Field(None, gt=0, le=10000)
    weight_lbs: int | None = Field(None, ge=0)
    pieces: int = Field(1, ge=1)
    is_fragile: bool = False
    requires_liftgate: bool = False
    requires_pallet_jack: bool = False
    vehicle_type_required: str | None = Field(None, max_length=64)
    load_type: LoadType = LoadType.STANDARD
    is_backhaul_saver: bool = False
    # Explicit shipper price; omitted means "price it from the quote"
    price: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    allow_offers: bool = True
    allow_book_now: bool = False
    min_offer: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    verified_only: bool = False

    @model_validator(mode="after")
    def _check_windows(self) -> "CreateLoadRequest":
        if (
            self.pickup_window_start is not None
            and self.pickup_window_end is not None
            and self.pickup_window_end < self.pickup_window_start
        ):
            raise ValueError("pickup_window_end must not precede pickup_window_start")
        return self


class TransitionStatusRequest(BaseModel):
    status: LoadStatus


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class LoadResponse(BaseModel):
    id: str
    shipper_id: str
    status: str
    load_type: str
    description: str | None
    pickup_city: str | None
    pickup_state: str | None
    pickup_lat: float | None
    pickup_lng: float | None
    delivery_city: str | None
    delivery_state: str | None
    delivery_lat: float | None
    delivery_lng: float | None
    pickup_window_start: str | None
    pickup_window_end: str | None
    delivery_window_end: str | None
    distance_miles: Decimal
    weight_lbs: int | None
    pieces: int
    vehicle_type_required: str | None
    is_backhaul_saver: bool
    price: Decimal
    price_display: str
    driver_payout: Decimal
    platform_fee: Decimal
    driver_id: str | None
    allow_offers: bool
    allow_book_now: bool
    min_offer: Decimal | None
    verified_only: bool
    posted_at: str | None
    assigned_at: str | None
    picked_up_at: str | None
    delivered_at: str | None
    completed_at: str | None
    cancelled_at: str | None
    cancelled_by: str | None

    @classmethod
    def from_domain(cls, load: Load) -> "LoadResponse":
        return cls(
            id=load.id,
            shipper_id=load.shipper_id,
            status=load.status.value,
            load_type=load.load_type,
            description=load.description,
            pickup_city=load.pickup_city,
            pickup_state=load.pickup_state,
            pickup_lat=load.pickup_lat,
            pickup_lng=load.pickup_lng,
            delivery_city=load.delivery_city,
            delivery_state=load.delivery_state,
            delivery_lat=load.delivery_lat,
            delivery_lng=load.delivery_lng,
            pickup_window_start=_iso(load.pickup_window_start),
            pickup_window_end=_iso(load.pickup_window_end),
            delivery_window_end=_iso(load.delivery_window_end),
            distance_miles=load.distance_miles,
            weight_lbs=load.weight_lbs,
            pieces=load.pieces,
            vehicle_type_required=load.vehicle_type_required,
            is_backhaul_saver=load.is_backhaul_saver,
            price=load.price,
            price_display=money_to_display(load.price),
            driver_payout=load.driver_payout,
            platform_fee=load.platform_fee,
            driver_id=load.driver_id,
            allow_offers=load.allow_offers,
            allow_book_now=load.allow_book_now,
            min_offer=load.min_offer,
            verified_only=load.verified_only,
            posted_at=_iso(load.posted_at),
            assigned_at=_iso(load.assigned_at),
            picked_up_at=_iso(load.picked_up_at),
            delivered_at=_iso(load.delivered_at),
            completed_at=_iso(load.completed_at),
            cancelled_at=_iso(load.cancelled_at),
            cancelled_by=load.cancelled_by,
        )
