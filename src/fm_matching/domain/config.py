"""Immutable matching configuration: weights, thresholds, default filters."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class MatchingConfig:
    # Score tiers
    perfect_threshold: int = 85
    very_close_threshold: int = 70
    decent_threshold: int = 50
    # Scoring weights
    deadhead_penalty: float = 1.2
    detour_penalty: float = 0.8
    tight_window_penalty: float = 5.0
    destination_bonus: float = 10.0
    same_state_bonus: float = 5.0
    tight_window_hours: float = 2.0
    near_destination_miles: float = 50.0
    # Labels
    tight_fit_deadhead_miles: float = 25.0
    tight_fit_detour_miles: float = 15.0
    # Default filters
    default_max_results: int = 20
    max_results_cap: int = 50
    default_max_deadhead_miles: float = 100.0
    default_max_detour_miles: float = 75.0
    default_min_score: int = 30
    # Time feasibility
    avg_speed_mph: float = 50.0
    drive_time_buffer: float = 1.2
    loading_minutes: int = 30
    # Driver equipment -> smaller equipment it can also haul (normalized keys)
    equipment_upgrades: Mapping[str, frozenset[str]] = MappingProxyType({
        "box_truck_26ft": frozenset({"box_truck_24ft", "box_truck_16ft"}),
        "box_truck_24ft": frozenset({"box_truck_16ft"}),
        "dry_van_53ft": frozenset({"dry_van_48ft"}),
        "reefer_53ft": frozenset({"reefer_48ft"}),
        "flatbed_53ft": frozenset({"flatbed_48ft"}),
    })


DEFAULT_MATCHING_CONFIG = MatchingConfig()
