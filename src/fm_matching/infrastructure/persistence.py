"""SqlDriverAvailabilityProvider — reads the driver-side availability table.

All queries use raw text() SQL (no ORM). Only active posts are returned;
the ranker applies every matching rule itself.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.money import to_decimal
from src.fm_matching.domain.models import DriverAvailability, MatchingStats

_AVAILABILITY_COLUMNS = """
    id, driver_id, current_lat, current_lng, is_active, org_verified, rating,
    destination_lat, destination_lng, destination_city, destination_state,
    current_load_id, equipment_type, service_types, max_deadhead_miles,
    min_payout, min_rate_per_mile, available_from
"""

_LIST_CANDIDATES_SQL = text(f"""
    SELECT {_AVAILABILITY_COLUMNS}
    FROM driver_availability
    WHERE is_active = TRUE
      AND available_from <= :available_at
      AND (available_until IS NULL OR available_until >= :available_at)
""")

# Latest active post per driver
_GET_FOR_DRIVERS_SQL = text(f"""
    SELECT DISTINCT ON (driver_id) {_AVAILABILITY_COLUMNS}
    FROM driver_availability
    WHERE driver_id IN :driver_ids AND is_active = TRUE
    ORDER BY driver_id, available_from DESC
""").bindparams(bindparam("driver_ids", expanding=True))

_STATS_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM driver_availability WHERE is_active = TRUE) AS active_availability,
        (SELECT COUNT(*) FROM loads WHERE status = 'posted') AS posted_loads,
        (SELECT COUNT(*) FROM load_offers
          WHERE status = 'pending' AND expires_at > :now) AS pending_offers,
        (SELECT COUNT(*) FROM load_offers WHERE status = 'accepted') AS accepted_offers,
        (SELECT AVG(match_score) FROM load_offers
          WHERE status = 'accepted') AS avg_accepted_score
""")


def _opt_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _row_to_availability(row: Any) -> DriverAvailability:
    return DriverAvailability(
        driver_id=row.driver_id,
        availability_id=row.id,
        current_lat=_opt_float(row.current_lat),
        current_lng=_opt_float(row.current_lng),
        is_available=row.is_active,
        org_verified=row.org_verified,
        rating=_opt_float(row.rating),
        destination_lat=_opt_float(row.destination_lat),
        destination_lng=_opt_float(row.destination_lng),
        destination_city=row.destination_city,
        destination_state=row.destination_state,
        current_load_id=row.current_load_id,
        equipment_type=row.equipment_type,
        service_types=tuple(row.service_types or ("standard",)),
        max_deadhead_miles=_opt_float(row.max_deadhead_miles),
        min_payout=to_decimal(row.min_payout) if row.min_payout is not None else None,
        min_rate_per_mile=(
            to_decimal(row.min_rate_per_mile) if row.min_rate_per_mile is not None else None
        ),
        available_from=row.available_from,
    )


class SqlDriverAvailabilityProvider:
    async def list_candidates(
        self, db: AsyncSession, available_at: datetime
    ) -> list[DriverAvailability]:
        result = await db.execute(_LIST_CANDIDATES_SQL, {"available_at": available_at})
        return [_row_to_availability(row) for row in result.fetchall()]

    async def get_for_drivers(
        self, db: AsyncSession, driver_ids: list[str]
    ) -> list[DriverAvailability]:
        if not driver_ids:
            return []
        result = await db.execute(_GET_FOR_DRIVERS_SQL, {"driver_ids": list(driver_ids)})
        return [_row_to_availability(row) for row in result.fetchall()]


class MatchingStatsRepository:
    async def get_stats(self, db: AsyncSession, now: datetime) -> MatchingStats:
        row = (await db.execute(_STATS_SQL, {"now": now})).fetchone()
        avg = row.avg_accepted_score
        return MatchingStats(
            active_availability=row.active_availability,
            posted_loads=row.posted_loads,
            pending_offers=row.pending_offers,
            accepted_offers=row.accepted_offers,
            avg_accepted_score=round(float(avg), 1) if avg is not None else None,
        )
