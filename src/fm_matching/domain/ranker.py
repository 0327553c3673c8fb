"""Route-fit driver ranking for a single load.

Pure: the caller supplies the load and the candidate pool. Never raises for
an empty or degenerate pool; the result carries a reason code instead.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from src.fm_common.datetime_utils import utc_now
from src.fm_load.domain.models import Load
from src.fm_matching.domain.config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from src.fm_matching.domain.geo import detour_miles, haversine_miles
from src.fm_matching.domain.models import (
    DriverAvailability,
    MatchCandidate,
    MatchOptions,
    MatchSummary,
    RankedMatches,
)

REASON_EMPTY_POOL = "EMPTY_POOL"
REASON_LOAD_MISSING_COORDINATES = "LOAD_MISSING_COORDINATES"
REASON_NO_ELIGIBLE_DRIVERS = "NO_ELIGIBLE_DRIVERS"
REASON_NO_MATCHES_WITHIN_LIMITS = "NO_MATCHES_WITHIN_LIMITS"

_WILDCARD_SERVICE = "all"
_ANY_EQUIPMENT = "not_sure"


@dataclass(frozen=True)
class _Feasibility:
    feasible: bool
    eta_to_pickup_minutes: int
    warnings: tuple[str, ...]


def normalize_equipment(name: str | None) -> str:
    """'Box Truck 26ft' -> 'box_truck_26ft'."""
    if not name:
        return ""
    return re.sub(r"\s+", "_", name.strip().lower())


def equipment_compatible(
    driver_equipment: str | None,
    required: str | None,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> bool:
    required_key = normalize_equipment(required)
    if not required_key or required_key == _ANY_EQUIPMENT:
        return True
    driver_key = normalize_equipment(driver_equipment)
    if driver_key == required_key:
        return True
    return required_key in config.equipment_upgrades.get(driver_key, frozenset())


def accepts_load_type(service_types: tuple[str, ...], load_type: str) -> bool:
    return _WILDCARD_SERVICE in service_types or load_type in service_types


def check_time_feasibility(
    load: Load,
    driver: DriverAvailability,
    deadhead: float,
    now: datetime,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> _Feasibility:
    """Can the driver reach pickup before the window closes and deliver in time?"""
    hours_to_pickup = deadhead / config.avg_speed_mph * config.drive_time_buffer
    loaded_miles = haversine_miles(
        load.pickup_lat, load.pickup_lng, load.delivery_lat, load.delivery_lng
    )
    hours_to_delivery = loaded_miles / config.avg_speed_mph * config.drive_time_buffer
    eta_minutes = round(hours_to_pickup * 60)

    departure = driver.available_from or now
    pickup_arrival = departure + timedelta(hours=hours_to_pickup)
    warnings: list[str] = []

    if load.pickup_window_end is not None and pickup_arrival > load.pickup_window_end:
        return _Feasibility(False, eta_minutes, ("Cannot reach pickup before window closes",))
    if load.pickup_window_start is not None and pickup_arrival < load.pickup_window_start:
        warnings.append("Driver may arrive before pickup window opens")

    loading_start = pickup_arrival
    if load.pickup_window_start is not None:
        loading_start = max(pickup_arrival, load.pickup_window_start)
    delivery_arrival = loading_start + timedelta(
        minutes=config.loading_minutes, hours=hours_to_delivery
    )
    if load.delivery_window_end is not None and delivery_arrival > load.delivery_window_end:
        warnings.append("Cannot complete delivery before window closes")
        return _Feasibility(False, eta_minutes, tuple(warnings))

    return _Feasibility(True, eta_minutes, tuple(warnings))


def meets_payout_minimums(load: Load, driver: DriverAvailability) -> bool:
    payout = load.driver_payout or Decimal("0")
    if driver.min_payout and payout < driver.min_payout:
        return False
    if driver.min_rate_per_mile and load.distance_miles > 0:
        if payout / load.distance_miles < driver.min_rate_per_mile:
            return False
    return True


def quality_tier(score: int, config: MatchingConfig = DEFAULT_MATCHING_CONFIG) -> str:
    if score >= config.perfect_threshold:
        return "perfect"
    if score >= config.very_close_threshold:
        return "very_close"
    if score >= config.decent_threshold:
        return "decent"
    return "available"


def _pickup_window_hours(load: Load) -> float | None:
    if load.pickup_window_start is None or load.pickup_window_end is None:
        return None
    return (load.pickup_window_end - load.pickup_window_start).total_seconds() / 3600


def score_match(
    deadhead: float,
    detour: float,
    pickup_window_hours: float | None,
    near_destination: bool,
    same_state: bool,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> int:
    score = 100.0
    score -= deadhead * config.deadhead_penalty
    score -= detour * config.detour_penalty
    if pickup_window_hours is not None and pickup_window_hours < config.tight_window_hours:
        score -= config.tight_window_penalty
    if near_destination:
        score += config.destination_bonus
    if same_state:
        score += config.same_state_bonus
    return round(max(0.0, min(100.0, score)))


def _label(candidate_deadhead: float, candidate_detour: float, near_destination: bool,
           is_wider: bool, score: int, config: MatchingConfig) -> str:
    if near_destination:
        return "backhaul_opportunity"
    if (candidate_deadhead <= config.tight_fit_deadhead_miles
            and candidate_detour <= config.tight_fit_detour_miles):
        return "tight_fit"
    if is_wider:
        return "wider_match"
    return quality_tier(score, config)


def _sort_key(c: MatchCandidate) -> tuple:
    # Missing ratings sort after any rated driver
    rating_key = -c.rating if c.rating is not None else float("inf")
    return (-c.score, c.deadhead_miles, rating_key, c.driver_id)


def _best_post_key(c: MatchCandidate) -> tuple:
    return (c.is_wider_match, *_sort_key(c))


def _summarize(candidates: list[MatchCandidate], config: MatchingConfig) -> MatchSummary:
    tiers = [quality_tier(c.score, config) for c in candidates]
    return MatchSummary(
        total=len(candidates),
        perfect=tiers.count("perfect"),
        very_close=tiers.count("very_close"),
        decent=tiers.count("decent"),
        available=tiers.count("available"),
    )


def find_matches(
    load: Load,
    candidate_pool: list[DriverAvailability],
    options: MatchOptions | None = None,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
    now: datetime | None = None,
) -> RankedMatches:
    """Rank candidate drivers for a load by route fit.

    Hard filters exclude a candidate outright. Candidates that only exceed
    the deadhead / detour ceilings or fall under min_score form the wider
    pool, used to fill remaining slots when include_wider_matches is set.
    """
    opts = options or MatchOptions()
    max_results = max(1, min(opts.max_results, config.max_results_cap))
    now = now or utc_now()
    filters = {
        "max_deadhead_miles": opts.max_deadhead_miles,
        "max_detour_miles": opts.max_detour_miles,
        "min_score": opts.min_score,
        "include_wider_matches": opts.include_wider_matches,
        "max_results": max_results,
    }

    def _empty(reason: str) -> RankedMatches:
        return RankedMatches(load.id, [], MatchSummary(), filters, reason)

    if not candidate_pool:
        return _empty(REASON_EMPTY_POOL)
    if not (load.has_pickup_coords and load.has_delivery_coords):
        return _empty(REASON_LOAD_MISSING_COORDINATES)

    pickup = (load.pickup_lat, load.pickup_lng)
    delivery = (load.delivery_lat, load.delivery_lng)
    window_hours = _pickup_window_hours(load)
    # One candidate per driver: a driver may have several active posts
    best: dict[str, MatchCandidate] = {}

    for driver in candidate_pool:
        # Hard filters
        if not driver.is_available or driver.current_load_id is not None:
            continue
        if driver.current_lat is None or driver.current_lng is None:
            continue
        if load.verified_only and not driver.org_verified:
            continue
        if not equipment_compatible(driver.equipment_type, load.vehicle_type_required, config):
            continue
        if not accepts_load_type(driver.service_types, load.load_type):
            continue
        current = (driver.current_lat, driver.current_lng)
        deadhead = haversine_miles(*current, *pickup)
        feasibility = check_time_feasibility(load, driver, deadhead, now, config)
        if not feasibility.feasible:
            continue
        if not meets_payout_minimums(load, driver):
            continue

        detour = 0.0
        near_destination = False
        same_state = False
        if driver.has_destination:
            destination = (driver.destination_lat, driver.destination_lng)
            detour = detour_miles(current, destination, pickup, delivery)
            near_destination = (
                haversine_miles(*delivery, *destination) < config.near_destination_miles
            )
            same_state = (
                driver.destination_state is not None
                and driver.destination_state == load.delivery_state
            )

        score = score_match(deadhead, detour, window_hours, near_destination, same_state, config)

        deadhead_ceiling = opts.max_deadhead_miles
        if driver.max_deadhead_miles is not None:
            deadhead_ceiling = min(deadhead_ceiling, driver.max_deadhead_miles)
        within_limits = (
            deadhead <= deadhead_ceiling
            and detour <= opts.max_detour_miles
            and score >= opts.min_score
        )

        candidate = MatchCandidate(
            driver_id=driver.driver_id,
            availability_id=driver.availability_id,
            score=score,
            deadhead_miles=round(deadhead, 1),
            detour_miles=round(detour, 1),
            rating=driver.rating,
            equipment=driver.equipment_type,
            match_label=_label(deadhead, detour, near_destination, not within_limits, score, config),
            quality_tier=quality_tier(score, config),
            eta_to_pickup_minutes=feasibility.eta_to_pickup_minutes,
            estimated_payout=load.driver_payout,
            is_wider_match=not within_limits,
            is_near_destination=near_destination,
            time_warnings=feasibility.warnings,
        )
        kept = best.get(candidate.driver_id)
        if kept is None or _best_post_key(candidate) < _best_post_key(kept):
            best[candidate.driver_id] = candidate

    strict = sorted((c for c in best.values() if not c.is_wider_match), key=_sort_key)
    wider = sorted((c for c in best.values() if c.is_wider_match), key=_sort_key)

    matches = strict[:max_results]
    eligible = list(strict)
    if opts.include_wider_matches:
        eligible.extend(wider)
        if len(matches) < max_results:
            matches.extend(wider[: max_results - len(matches)])

    reason = None
    if not matches:
        reason = REASON_NO_MATCHES_WITHIN_LIMITS if wider else REASON_NO_ELIGIBLE_DRIVERS

    return RankedMatches(
        load_id=load.id,
        matches=matches,
        summary=_summarize(eligible, config),
        filters=filters,
        reason=reason,
    )
