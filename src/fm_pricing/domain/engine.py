"""Pricing engine — pure quote calculation, no I/O.

Pipeline:
  rate_per_mile = benchmark x market_adjustment x distance_premium x urgency
  subtotal      = base_fee + rate_per_mile x miles
  before        = max(subtotal, min_charge(miles))
  total         = before x 0.80 for backhaul-saver standard loads, else before
  platform_fee  = clamp(total x tier_pct(total), min, max)
  payout        = total - platform_fee

Money is rounded to cents only when the breakdown is assembled.
"""

from decimal import Decimal

from src.fm_common.enums import LoadType
from src.fm_common.money import round_money, to_decimal
from src.fm_pricing.domain.config import DEFAULT_PRICING_CONFIG, PricingConfig
from src.fm_pricing.domain.models import QuoteBreakdown


def _tier_value(
    tiers: tuple[tuple[Decimal | None, Decimal], ...], amount: Decimal
) -> Decimal:
    for upper, value in tiers:
        if upper is None or amount <= upper:
            return value
    return tiers[-1][1]


def distance_premium(miles: Decimal, config: PricingConfig = DEFAULT_PRICING_CONFIG) -> Decimal:
    """Short hauls cost more per mile: <=50 -> 1.35 ... >200 -> 1.00."""
    return _tier_value(config.distance_premium_tiers, miles)


def minimum_charge(miles: Decimal, config: PricingConfig = DEFAULT_PRICING_CONFIG) -> Decimal:
    return _tier_value(config.min_charge_tiers, miles)


def platform_fee_rate(total: Decimal, config: PricingConfig = DEFAULT_PRICING_CONFIG) -> Decimal:
    return _tier_value(config.platform_fee_tiers, total)


def calculate_platform_fee(
    total: Decimal, config: PricingConfig = DEFAULT_PRICING_CONFIG
) -> tuple[Decimal, Decimal]:
    """Return (unrounded fee, tier rate). Fee is clamped to [min, max]."""
    rate = platform_fee_rate(total, config)
    fee = total * rate
    fee = min(config.platform_fee_max, max(config.platform_fee_min, fee))
    return fee, rate


def calculate_quote(
    distance_miles: float | Decimal,
    load_type: str = LoadType.STANDARD.value,
    benchmark_rpm: float | Decimal = Decimal("2.00"),
    is_backhaul_saver: bool = False,
    equipment: str | None = None,
    config: PricingConfig = DEFAULT_PRICING_CONFIG,
) -> QuoteBreakdown:
    """Compute the full price breakdown for a shipment.

    Assumes validated input: distance_miles > 0 (callers reject otherwise).
    Unknown load types price as standard. The backhaul flag is honoured for
    standard loads only.
    """
    miles = to_decimal(distance_miles)
    rpm = to_decimal(benchmark_rpm)
    lt_config = config.load_type_config(load_type)
    backhaul = is_backhaul_saver and load_type == LoadType.STANDARD.value

    premium = distance_premium(miles, config)
    adjustment = config.backhaul_market_adjustment if backhaul else lt_config.market_adjustment

    rate_per_mile = rpm * adjustment * premium * lt_config.urgency_multiplier
    mileage_charge = rate_per_mile * miles
    subtotal = lt_config.base_fee + mileage_charge

    min_charge = minimum_charge(miles, config)
    min_charge_applied = max(Decimal("0"), min_charge - subtotal)
    total_before_discount = max(subtotal, min_charge)

    total = total_before_discount
    backhaul_discount = Decimal("0")
    if backhaul:
        total = total_before_discount * config.backhaul_discount_multiplier
        backhaul_discount = total_before_discount - total

    platform_fee, fee_rate = calculate_platform_fee(total, config)
    # Payout is derived from the rounded figures so total == fee + payout to the cent
    driver_payout = round_money(total) - round_money(platform_fee)

    return QuoteBreakdown(
        distance_miles=miles,
        load_type=load_type,
        equipment=equipment,
        is_backhaul_saver=backhaul,
        base_fee=round_money(lt_config.base_fee),
        benchmark_rpm_used=round_money(rpm),
        market_adjustment=adjustment,
        distance_premium=premium,
        urgency_multiplier=lt_config.urgency_multiplier,
        rate_per_mile=round_money(rate_per_mile),
        mileage_charge=round_money(mileage_charge),
        min_charge_applied=round_money(min_charge_applied),
        subtotal=round_money(subtotal),
        total_before_discount=round_money(total_before_discount),
        backhaul_discount_amount=round_money(backhaul_discount),
        total=round_money(total),
        platform_fee=round_money(platform_fee),
        platform_fee_pct=int((fee_rate * 100).to_integral_value()),
        driver_payout=driver_payout,
    )
