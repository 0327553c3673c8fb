"""Domain models for fm_pricing — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class QuoteBreakdown:
    # Input echo
    distance_miles: Decimal
    load_type: str
    equipment: str | None
    is_backhaul_saver: bool  # True only when the discount actually applied
    # Breakdown
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
    # Final numbers
    total: Decimal
    platform_fee: Decimal
    platform_fee_pct: int
    driver_payout: Decimal


@dataclass
class MarketBenchmark:
    equipment_group: str
    benchmark_rpm: Decimal
    date: date
    source: str  # manual / default
    confidence: Decimal
    notes: str | None = None
