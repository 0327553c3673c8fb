"""Pydantic schemas for fm_matching API."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from src.fm_matching.domain.models import (
    MatchCandidate,
    MatchOptions,
    MatchingStats,
    RankedMatches,
)


class MatchQuery(BaseModel):
    max_results: int = Field(20, ge=1, le=50)
    include_wider_matches: bool = False
    max_deadhead_miles: float = Field(100.0, gt=0, le=1000)
    max_detour_miles: float = Field(75.0, ge=0, le=1000)
    min_score: int = Field(30, ge=0, le=100)

    def to_options(self) -> MatchOptions:
        return MatchOptions(
            max_results=self.max_results,
            include_wider_matches=self.include_wider_matches,
            max_deadhead_miles=self.max_deadhead_miles,
            max_detour_miles=self.max_detour_miles,
            min_score=self.min_score,
        )


class MatchItem(BaseModel):
    driver_id: str
    availability_id: str | None
    score: int
    match_label: str
    quality_tier: str
    deadhead_miles: float
    detour_miles: float
    rating: float | None
    equipment: str | None
    eta_to_pickup_minutes: int
    estimated_payout: Decimal
    is_wider_match: bool
    time_warnings: list[str]

    @classmethod
    def from_domain(cls, c: MatchCandidate) -> "MatchItem":
        return cls(
            driver_id=c.driver_id,
            availability_id=c.availability_id,
            score=c.score,
            match_label=c.match_label,
            quality_tier=c.quality_tier,
            deadhead_miles=c.deadhead_miles,
            detour_miles=c.detour_miles,
            rating=c.rating,
            equipment=c.equipment,
            eta_to_pickup_minutes=c.eta_to_pickup_minutes,
            estimated_payout=c.estimated_payout,
            is_wider_match=c.is_wider_match,
            time_warnings=list(c.time_warnings),
        )


class MatchSummaryResponse(BaseModel):
    total: int
    perfect: int
    very_close: int
    decent: int
    available: int


class MatchResponse(BaseModel):
    load_id: str
    matches: list[MatchItem]
    summary: MatchSummaryResponse
    filters: dict[str, Any]
    reason: str | None

    @classmethod
    def from_domain(cls, r: RankedMatches) -> "MatchResponse":
        return cls(
            load_id=r.load_id,
            matches=[MatchItem.from_domain(m) for m in r.matches],
            summary=MatchSummaryResponse(
                total=r.summary.total,
                perfect=r.summary.perfect,
                very_close=r.summary.very_close,
                decent=r.summary.decent,
                available=r.summary.available,
            ),
            filters=r.filters,
            reason=r.reason,
        )


class MatchingStatsResponse(BaseModel):
    active_availability: int
    posted_loads: int
    pending_offers: int
    accepted_offers: int
    avg_accepted_score: float | None

    @classmethod
    def from_domain(cls, s: MatchingStats) -> "MatchingStatsResponse":
        return cls(
            active_availability=s.active_availability,
            posted_loads=s.posted_loads,
            pending_offers=s.pending_offers,
            accepted_offers=s.accepted_offers,
            avg_accepted_score=s.avg_accepted_score,
        )
