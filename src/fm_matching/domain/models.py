"""Domain models for fm_matching — pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class DriverAvailability:
    """One driver's current availability post, read from the driver side."""

    driver_id: str
    availability_id: str | None
    current_lat: float | None
    current_lng: float | None
    is_available: bool = True
    org_verified: bool = False
    rating: float | None = None
    destination_lat: float | None = None
    destination_lng: float | None = None
    destination_city: str | None = None
    destination_state: str | None = None
    current_load_id: str | None = None
    equipment_type: str | None = None
    service_types: tuple[str, ...] = ("standard",)
    max_deadhead_miles: float | None = None
    min_payout: Decimal | None = None
    min_rate_per_mile: Decimal | None = None
    available_from: datetime | None = None

    @property
    def has_destination(self) -> bool:
        return self.destination_lat is not None and self.destination_lng is not None


@dataclass(frozen=True)
class MatchOptions:
    max_results: int = 20
    include_wider_matches: bool = False
    max_deadhead_miles: float = 100.0
    max_detour_miles: float = 75.0
    min_score: int = 30


@dataclass(frozen=True)
class MatchCandidate:
    driver_id: str
    availability_id: str | None
    score: int
    deadhead_miles: float
    detour_miles: float
    rating: float | None
    equipment: str | None
    match_label: str
    quality_tier: str
    eta_to_pickup_minutes: int
    estimated_payout: Decimal
    is_wider_match: bool = False
    is_near_destination: bool = False
    time_warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class MatchSummary:
    total: int = 0
    perfect: int = 0
    very_close: int = 0
    decent: int = 0
    available: int = 0


@dataclass(frozen=True)
class RankedMatches:
    load_id: str
    matches: list[MatchCandidate]
    summary: MatchSummary
    filters: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None


@dataclass(frozen=True)
class MatchingStats:
    """Marketplace-wide matching counters; pending counts only unexpired offers."""
    active_availability: int
    posted_loads: int
    pending_offers: int
    accepted_offers: int
    avg_accepted_score: float | None
