"""Domain models for fm_load: pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.fm_common.enums import LoadStatus


@dataclass
class Load:
    id: str
    shipper_id: str
    posted_by_org_id: str | None
    status: LoadStatus
    load_type: str
    description: str | None
    # Route
    pickup_address: str | None
    pickup_city: str | None
    pickup_state: str | None
    pickup_lat: float | None
    pickup_lng: float | None
    delivery_address: str | None
    delivery_city: str | None
    delivery_state: str | None
    delivery_lat: float | None
    delivery_lng: float | None
    pickup_window_start: datetime | None
    pickup_window_end: datetime | None
    delivery_window_end: datetime | None
    distance_miles: Decimal
    # Cargo
    weight_lbs: int | None
    pieces: int
    is_fragile: bool
    requires_liftgate: bool
    requires_pallet_jack: bool
    vehicle_type_required: str | None
    # Money
    is_backhaul_saver: bool
    price: Decimal
    driver_payout: Decimal
    platform_fee: Decimal
    # Booking
    driver_id: str | None
    allow_offers: bool
    allow_book_now: bool
    min_offer: Decimal | None
    verified_only: bool
    # Lifecycle stamps
    posted_at: datetime | None
    assigned_at: datetime | None = None
    picked_up_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = LoadStatus(self.status)

    @property
    def has_pickup_coords(self) -> bool:
        return self.pickup_lat is not None and self.pickup_lng is not None

    @property
    def has_delivery_coords(self) -> bool:
        return self.delivery_lat is not None and self.delivery_lng is not None
