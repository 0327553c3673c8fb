"""LoadRepository — concrete implementation of LoadRepositoryProtocol.

All queries use raw text() SQL (no ORM). Every status write carries the
expected current status in its WHERE clause and uses RETURNING, so a lost
race shows up as "no row" instead of a silent overwrite.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.enums import LoadStatus
from src.fm_common.money import to_decimal
from src.fm_load.domain.models import Load
from src.fm_load.domain.state_machine import TIMESTAMP_COLUMNS

_LOAD_COLUMNS = """
    id, shipper_id, posted_by_org_id, status, load_type, description,
    pickup_address, pickup_city, pickup_state, pickup_lat, pickup_lng,
    delivery_address, delivery_city, delivery_state, delivery_lat, delivery_lng,
    pickup_window_start, pickup_window_end, delivery_window_end, distance_miles,
    weight_lbs, pieces, is_fragile, requires_liftgate, requires_pallet_jack,
    vehicle_type_required, is_backhaul_saver, price, driver_payout, platform_fee,
    driver_id, allow_offers, allow_book_now, min_offer, verified_only,
    posted_at, assigned_at, picked_up_at, delivered_at, completed_at,
    cancelled_at, cancelled_by, created_at, updated_at
"""

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_LOAD_SQL = text(f"SELECT {_LOAD_COLUMNS} FROM loads WHERE id = :load_id")

_INSERT_LOAD_SQL = text(f"""
    INSERT INTO loads (
        id, shipper_id, posted_by_org_id, status, load_type, description,
        pickup_address, pickup_city, pickup_state, pickup_lat, pickup_lng,
        delivery_address, delivery_city, delivery_state, delivery_lat, delivery_lng,
        pickup_window_start, pickup_window_end, delivery_window_end, distance_miles,
        weight_lbs, pieces, is_fragile, requires_liftgate, requires_pallet_jack,
        vehicle_type_required, is_backhaul_saver, price, driver_payout, platform_fee,
        allow_offers, allow_book_now, min_offer, verified_only, posted_at
    ) VALUES (
        :id, :shipper_id, :posted_by_org_id, 'posted', :load_type, :description,
        :pickup_address, :pickup_city, :pickup_state, :pickup_lat, :pickup_lng,
        :delivery_address, :delivery_city, :delivery_state, :delivery_lat, :delivery_lng,
        :pickup_window_start, :pickup_window_end, :delivery_window_end, :distance_miles,
        :weight_lbs, :pieces, :is_fragile, :requires_liftgate, :requires_pallet_jack,
        :vehicle_type_required, :is_backhaul_saver, :price, :driver_payout, :platform_fee,
        :allow_offers, :allow_book_now, :min_offer, :verified_only, :posted_at
    )
    RETURNING {_LOAD_COLUMNS}
""")


def _build_status_update_sql(stamp_column: str | None) -> Any:
    stamp = f", {stamp_column} = :now" if stamp_column else ""
    return text(f"""
        UPDATE loads
        SET status = :new_status{stamp}
        WHERE id = :load_id AND status = :expected
        RETURNING {_LOAD_COLUMNS}
    """)


# One prepared statement per target status; column names come from a fixed table
_UPDATE_STATUS_SQL = {
    status: _build_status_update_sql(TIMESTAMP_COLUMNS.get(status))
    for status in LoadStatus
    if status not in (LoadStatus.CANCELLED, LoadStatus.ASSIGNED)
}

_CANCEL_SQL = text(f"""
    UPDATE loads
    SET status = 'cancelled',
        driver_id = NULL,
        cancelled_at = :now,
        cancelled_by = :cancelled_by
    WHERE id = :load_id AND status = :expected
    RETURNING {_LOAD_COLUMNS}
""")

# Same guard as offer acceptance: only an unassigned posted load can be taken
_ASSIGN_DRIVER_SQL = text(f"""
    UPDATE loads
    SET status = 'assigned', driver_id = :driver_id, assigned_at = :now
    WHERE id = :load_id AND status = 'posted' AND driver_id IS NULL
    RETURNING {_LOAD_COLUMNS}
""")

_EXPIRE_PENDING_OFFERS_SQL = text("""
    UPDATE load_offers
    SET status = 'expired', responded_at = :now
    WHERE load_id = :load_id AND status = 'pending'
    RETURNING driver_id
""")

# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _opt_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _row_to_load(row: Any) -> Load:
    return Load(
        id=row.id,
        shipper_id=row.shipper_id,
        posted_by_org_id=row.posted_by_org_id,
        status=LoadStatus(row.status),
        load_type=row.load_type,
        description=row.description,
        pickup_address=row.pickup_address,
        pickup_city=row.pickup_city,
        pickup_state=row.pickup_state,
        pickup_lat=_opt_float(row.pickup_lat),
        pickup_lng=_opt_float(row.pickup_lng),
        delivery_address=row.delivery_address,
        delivery_city=row.delivery_city,
        delivery_state=row.delivery_state,
        delivery_lat=_opt_float(row.delivery_lat),
        delivery_lng=_opt_float(row.delivery_lng),
        pickup_window_start=row.pickup_window_start,
        pickup_window_end=row.pickup_window_end,
        delivery_window_end=row.delivery_window_end,
        distance_miles=to_decimal(row.distance_miles),
        weight_lbs=row.weight_lbs,
        pieces=row.pieces,
        is_fragile=row.is_fragile,
        requires_liftgate=row.requires_liftgate,
        requires_pallet_jack=row.requires_pallet_jack,
        vehicle_type_required=row.vehicle_type_required,
        is_backhaul_saver=row.is_backhaul_saver,
        price=to_decimal(row.price),
        driver_payout=to_decimal(row.driver_payout),
        platform_fee=to_decimal(row.platform_fee),
        driver_id=row.driver_id,
        allow_offers=row.allow_offers,
        allow_book_now=row.allow_book_now,
        min_offer=to_decimal(row.min_offer) if row.min_offer is not None else None,
        verified_only=row.verified_only,
        posted_at=row.posted_at,
        assigned_at=row.assigned_at,
        picked_up_at=row.picked_up_at,
        delivered_at=row.delivered_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
        cancelled_by=row.cancelled_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class LoadRepository:
    async def get_by_id(self, db: AsyncSession, load_id: str) -> Load | None:
        result = await db.execute(_GET_LOAD_SQL, {"load_id": load_id})
        row = result.fetchone()
        return _row_to_load(row) if row is not None else None

    async def insert(self, db: AsyncSession, load: Load) -> Load:
        result = await db.execute(
            _INSERT_LOAD_SQL,
            {
                "id": load.id,
                "shipper_id": load.shipper_id,
                "posted_by_org_id": load.posted_by_org_id,
                "load_type": load.load_type,
                "description": load.description,
                "pickup_address": load.pickup_address,
                "pickup_city": load.pickup_city,
                "pickup_state": load.pickup_state,
                "pickup_lat": load.pickup_lat,
                "pickup_lng": load.pickup_lng,
                "delivery_address": load.delivery_address,
                "delivery_city": load.delivery_city,
                "delivery_state": load.delivery_state,
                "delivery_lat": load.delivery_lat,
                "delivery_lng": load.delivery_lng,
                "pickup_window_start": load.pickup_window_start,
                "pickup_window_end": load.pickup_window_end,
                "delivery_window_end": load.delivery_window_end,
                "distance_miles": load.distance_miles,
                "weight_lbs": load.weight_lbs,
                "pieces": load.pieces,
                "is_fragile": load.is_fragile,
                "requires_liftgate": load.requires_liftgate,
                "requires_pallet_jack": load.requires_pallet_jack,
                "vehicle_type_required": load.vehicle_type_required,
                "is_backhaul_saver": load.is_backhaul_saver,
                "price": load.price,
                "driver_payout": load.driver_payout,
                "platform_fee": load.platform_fee,
                "allow_offers": load.allow_offers,
                "allow_book_now": load.allow_book_now,
                "min_offer": load.min_offer,
                "verified_only": load.verified_only,
                "posted_at": load.posted_at,
            },
        )
        return _row_to_load(result.fetchone())

    async def update_status(
        self,
        db: AsyncSession,
        load_id: str,
        expected: str,
        new_status: str,
        now: datetime,
    ) -> Load | None:
        sql = _UPDATE_STATUS_SQL[LoadStatus(new_status)]
        params: dict[str, Any] = {
            "load_id": load_id,
            "expected": expected,
            "new_status": new_status,
        }
        if LoadStatus(new_status) in TIMESTAMP_COLUMNS:
            params["now"] = now
        result = await db.execute(sql, params)
        row = result.fetchone()
        return _row_to_load(row) if row is not None else None

    async def cancel(
        self,
        db: AsyncSession,
        load_id: str,
        expected: str,
        cancelled_by: str,
        now: datetime,
    ) -> Load | None:
        result = await db.execute(
            _CANCEL_SQL,
            {
                "load_id": load_id,
                "expected": expected,
                "cancelled_by": cancelled_by,
                "now": now,
            },
        )
        row = result.fetchone()
        return _row_to_load(row) if row is not None else None

    async def assign_driver(
        self, db: AsyncSession, load_id: str, driver_id: str, now: datetime
    ) -> Load | None:
        result = await db.execute(
            _ASSIGN_DRIVER_SQL,
            {"load_id": load_id, "driver_id": driver_id, "now": now},
        )
        row = result.fetchone()
        return _row_to_load(row) if row is not None else None

    async def expire_pending_offers(
        self, db: AsyncSession, load_id: str, now: datetime
    ) -> list[str]:
        """Expire every pending offer of the load; return the affected driver ids."""
        result = await db.execute(
            _EXPIRE_PENDING_OFFERS_SQL, {"load_id": load_id, "now": now}
        )
        return [row.driver_id for row in result.fetchall()]
