"""Immutable pricing configuration, built once and injected.

Tier tuples are ordered by ascending upper bound; bounds are inclusive and
None means "no upper bound".
"""

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class LoadTypeConfig:
    base_fee: Decimal
    urgency_multiplier: Decimal
    # Market adjustment against the benchmark RPM
    market_adjustment: Decimal


@dataclass(frozen=True)
class PricingConfig:
    load_types: Mapping[str, LoadTypeConfig]
    default_load_type: str
    backhaul_market_adjustment: Decimal
    backhaul_discount_multiplier: Decimal
    # (max_miles, multiplier)
    distance_premium_tiers: tuple[tuple[Decimal | None, Decimal], ...]
    # (max_miles, minimum charge)
    min_charge_tiers: tuple[tuple[Decimal | None, Decimal], ...]
    # (max_total, fee fraction)
    platform_fee_tiers: tuple[tuple[Decimal | None, Decimal], ...]
    platform_fee_min: Decimal
    platform_fee_max: Decimal

    def load_type_config(self, load_type: str) -> LoadTypeConfig:
        return self.load_types.get(load_type, self.load_types[self.default_load_type])


@dataclass(frozen=True)
class BenchmarkConfig:
    equipment_to_group: Mapping[str, str]
    default_benchmarks: Mapping[str, Decimal]
    fallback_rpm: Decimal = Decimal("2.00")
    fallback_group: str = "dry_van_53"
    default_confidence: Decimal = Decimal("0.5")


def _d(value: str) -> Decimal:
    return Decimal(value)


DEFAULT_PRICING_CONFIG = PricingConfig(
    load_types=MappingProxyType({
        "standard": LoadTypeConfig(_d("150"), _d("1.00"), _d("0.97")),
        "hotshot": LoadTypeConfig(_d("200"), _d("1.25"), _d("1.15")),
        "emergency": LoadTypeConfig(_d("250"), _d("1.50"), _d("1.35")),
    }),
    default_load_type="standard",
    backhaul_market_adjustment=_d("0.82"),
    backhaul_discount_multiplier=_d("0.80"),
    distance_premium_tiers=(
        (_d("50"), _d("1.35")),
        (_d("100"), _d("1.20")),
        (_d("200"), _d("1.10")),
        (None, _d("1.00")),
    ),
    min_charge_tiers=(
        (_d("25"), _d("200")),
        (_d("50"), _d("275")),
        (_d("100"), _d("350")),
        (None, _d("0")),
    ),
    platform_fee_tiers=(
        (_d("500"), _d("0.15")),
        (_d("1500"), _d("0.12")),
        (None, _d("0.10")),
    ),
    platform_fee_min=_d("25"),
    platform_fee_max=_d("250"),
)


DEFAULT_BENCHMARK_CONFIG = BenchmarkConfig(
    equipment_to_group=MappingProxyType({
        "Cargo Van": "cargo_van",
        "Sprinter Van": "sprinter_van",
        "Box Truck 16ft": "box_truck_16",
        "Box Truck 24ft": "box_truck_24",
        "Box Truck 26ft": "box_truck_26",
        "Dry Van 48ft": "dry_van_48",
        "Dry Van 53ft": "dry_van_53",
        "Reefer 48ft": "reefer_48",
        "Reefer 53ft": "reefer_53",
        "Flatbed 48ft": "flatbed_48",
        "Flatbed 53ft": "flatbed_53",
        "Step Deck": "step_deck",
        "Conestoga": "conestoga",
        "Hotshot Trailer": "hotshot_trailer",
        "Pickup w/ Trailer": "pickup_trailer",
        "Power Only": "power_only",
        "Double Drop": "double_drop",
        "Lowboy": "lowboy",
        "RGN": "rgn",
        "Tanker": "tanker",
        "Car Hauler": "car_hauler",
    }),
    default_benchmarks=MappingProxyType({
        "cargo_van": _d("1.25"),
        "sprinter_van": _d("1.40"),
        "box_truck_16": _d("1.65"),
        "box_truck_24": _d("1.80"),
        "box_truck_26": _d("1.90"),
        "dry_van_48": _d("2.10"),
        "dry_van_53": _d("2.25"),
        "reefer_48": _d("2.50"),
        "reefer_53": _d("2.65"),
        "flatbed_48": _d("2.40"),
        "flatbed_53": _d("2.55"),
        "step_deck": _d("2.70"),
        "conestoga": _d("2.85"),
        "hotshot_trailer": _d("1.75"),
        "pickup_trailer": _d("1.50"),
        "power_only": _d("1.60"),
        "double_drop": _d("3.00"),
        "lowboy": _d("3.25"),
        "rgn": _d("3.40"),
        "tanker": _d("2.60"),
        "car_hauler": _d("2.30"),
    }),
)


def resolve_equipment_group(
    equipment: str | None, config: BenchmarkConfig = DEFAULT_BENCHMARK_CONFIG
) -> str:
    """'Dry Van 53ft' -> 'dry_van_53'; unknown 'Box  Truck' -> 'box_truck'; None -> fallback."""
    if not equipment or not equipment.strip():
        return config.fallback_group
    mapped = config.equipment_to_group.get(equipment)
    if mapped is not None:
        return mapped
    return "_".join(equipment.strip().lower().split())
