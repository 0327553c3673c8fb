"""Pydantic schemas for fm_pricing API."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from src.fm_common.enums import LoadType
from src.fm_common.money import money_to_display
from src.fm_pricing.domain.models import MarketBenchmark, QuoteBreakdown

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class QuoteRequest(BaseModel):
    distance_miles: Decimal = Field(..., gt=0, description="Trip distance in miles")
    load_type: LoadType = LoadType.STANDARD
    equipment: str | None = Field(None, max_length=64)
    is_backhaul_saver: bool = False


class SetBenchmarkRequest(BaseModel):
    equipment_group: str = Field(..., min_length=1, max_length=64)
    benchmark_rpm: Decimal = Field(..., gt=0, max_digits=6, decimal_places=2)
    effective_date: date | None = None
    notes: str | None = Field(None, max_length=500)


class BulkBenchmarkEntry(BaseModel):
    # Loosely typed: invalid entries are skipped and counted, not rejected
    equipment_group: str | None = None
    benchmark_rpm: Decimal | None = None
    notes: str | None = None


class BulkSetBenchmarksRequest(BaseModel):
    effective_date: date | None = None
    benchmarks: list[BulkBenchmarkEntry] = Field(..., min_length=1, max_length=100)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class QuoteResponse(BaseModel):
    distance_miles: Decimal
    load_type: str
    equipment: str | None
    is_backhaul_saver: bool
    base_fee: Decimal
    benchmark_rpm_used: Decimal
    market_adjustment: Decimal
    distance_premium: Decimal
    urgency_multiplier: Decimal
    rate_per_mile: Decimal
    mileage_charge: Decimal
    min_charge_applied: Decimal
    subtotal: Decimal
    total_before_discount: Decimal
    backhaul_discount_amount: Decimal
    total: Decimal
    total_display: str
    platform_fee: Decimal
    platform_fee_pct: int
    driver_payout: Decimal
    driver_payout_display: str
    benchmark_source: str

    @classmethod
    def from_domain(cls, q: QuoteBreakdown, benchmark_source: str) -> "QuoteResponse":
        return cls(
            distance_miles=q.distance_miles,
            load_type=q.load_type,
            equipment=q.equipment,
            is_backhaul_saver=q.is_backhaul_saver,
            base_fee=q.base_fee,
            benchmark_rpm_used=q.benchmark_rpm_used,
            market_adjustment=q.market_adjustment,
            distance_premium=q.distance_premium,
            urgency_multiplier=q.urgency_multiplier,
            rate_per_mile=q.rate_per_mile,
            mileage_charge=q.mileage_charge,
            min_charge_applied=q.min_charge_applied,
            subtotal=q.subtotal,
            total_before_discount=q.total_before_discount,
            backhaul_discount_amount=q.backhaul_discount_amount,
            total=q.total,
            total_display=money_to_display(q.total),
            platform_fee=q.platform_fee,
            platform_fee_pct=q.platform_fee_pct,
            driver_payout=q.driver_payout,
            driver_payout_display=money_to_display(q.driver_payout),
            benchmark_source=benchmark_source,
        )


class BenchmarkResponse(BaseModel):
    equipment_group: str
    benchmark_rpm: Decimal
    date: str
    source: str
    confidence: Decimal
    notes: str | None

    @classmethod
    def from_domain(cls, b: MarketBenchmark) -> "BenchmarkResponse":
        return cls(
            equipment_group=b.equipment_group,
            benchmark_rpm=b.benchmark_rpm,
            date=b.date.isoformat(),
            source=b.source,
            confidence=b.confidence,
            notes=b.notes,
        )


class BenchmarkListResponse(BaseModel):
    date: str
    benchmarks: list[BenchmarkResponse]


class BulkSetBenchmarksResponse(BaseModel):
    date: str
    updated: int
    skipped: int
    benchmarks: list[BenchmarkResponse]
