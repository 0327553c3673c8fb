"""OfferRepository — concrete implementation of OfferRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

accept_offer touches the load row first: the conditional UPDATE takes its
row lock, so concurrent accepts on one load queue behind the first; once
it commits, READ COMMITTED re-evaluates the WHERE and the others match no
row. Offers are only locked after the load, which keeps lock order fixed.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.enums import OfferStatus
from src.fm_common.money import to_decimal
from src.fm_offer.domain.models import AcceptOutcome, AcceptResult, Offer

_OFFER_COLUMNS = """
    id, load_id, driver_id, offer_amount, driver_payout, match_score,
    deadhead_miles, status, counter_amount, expires_at, responded_at, created_at
"""

# Pending rows past expiry read as expired
_EFFECTIVE_STATUS = (
    "CASE WHEN status = 'pending' AND expires_at <= :now THEN 'expired' ELSE status END"
)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_INSERT_OFFER_SQL = text(f"""
    INSERT INTO load_offers (
        id, load_id, driver_id, offer_amount, driver_payout,
        match_score, deadhead_miles, status, expires_at
    ) VALUES (
        :id, :load_id, :driver_id, :offer_amount, :driver_payout,
        :match_score, :deadhead_miles, 'pending', :expires_at
    )
    ON CONFLICT (load_id, driver_id) DO NOTHING
    RETURNING {_OFFER_COLUMNS}
""")

_GET_EXISTING_ID_SQL = text("""
    SELECT id FROM load_offers WHERE load_id = :load_id AND driver_id = :driver_id
""")

_GET_OFFER_SQL = text(f"SELECT {_OFFER_COLUMNS} FROM load_offers WHERE id = :offer_id")

_LIST_FOR_DRIVER_SQL = text(f"""
    SELECT id, load_id, driver_id, offer_amount, driver_payout, match_score,
           deadhead_miles, {_EFFECTIVE_STATUS} AS status, counter_amount,
           expires_at, responded_at, created_at
    FROM load_offers
    WHERE driver_id = :driver_id
      AND (CAST(:status AS TEXT) IS NULL OR {_EFFECTIVE_STATUS} = CAST(:status AS TEXT))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_FOR_LOAD_SQL = text(f"""
    SELECT id, load_id, driver_id, offer_amount, driver_payout, match_score,
           deadhead_miles, {_EFFECTIVE_STATUS} AS status, counter_amount,
           expires_at, responded_at, created_at
    FROM load_offers
    WHERE load_id = :load_id
      AND (CAST(:status AS TEXT) IS NULL OR {_EFFECTIVE_STATUS} = CAST(:status AS TEXT))
    ORDER BY match_score DESC NULLS LAST, created_at ASC
""")

_DECLINE_SQL = text(f"""
    UPDATE load_offers
    SET status = 'declined', responded_at = :now
    WHERE id = :offer_id AND status = 'pending' AND expires_at > :now
    RETURNING {_OFFER_COLUMNS}
""")

_COUNTER_SQL = text(f"""
    UPDATE load_offers
    SET status = 'countered', counter_amount = :amount, responded_at = :now
    WHERE id = :offer_id AND status = 'pending' AND expires_at > :now
    RETURNING {_OFFER_COLUMNS}
""")

# Step 1 of accept: the load row lock serialises concurrent accepts
_ACCEPT_ASSIGN_LOAD_SQL = text("""
    UPDATE loads
    SET status = 'assigned', driver_id = :driver_id, assigned_at = :now
    WHERE id = :load_id AND status = 'posted' AND driver_id IS NULL
    RETURNING shipper_id
""")

# Step 2 of accept
_ACCEPT_OFFER_SQL = text(f"""
    UPDATE load_offers
    SET status = 'accepted', responded_at = :now
    WHERE id = :offer_id AND status = 'pending' AND expires_at > :now
    RETURNING {_OFFER_COLUMNS}
""")

# Step 3 of accept
_EXPIRE_SIBLINGS_SQL = text("""
    UPDATE load_offers
    SET status = 'expired', responded_at = :now
    WHERE load_id = :load_id AND id <> :offer_id AND status = 'pending'
    RETURNING driver_id
""")

_EXPIRE_STALE_SQL = text(f"""
    UPDATE load_offers
    SET status = 'expired'
    WHERE status = 'pending' AND expires_at <= :now
    RETURNING {_OFFER_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_offer(row: Any) -> Offer:
    return Offer(
        id=row.id,
        load_id=row.load_id,
        driver_id=row.driver_id,
        offer_amount=to_decimal(row.offer_amount),
        driver_payout=to_decimal(row.driver_payout),
        match_score=row.match_score,
        deadhead_miles=float(row.deadhead_miles) if row.deadhead_miles is not None else None,
        status=OfferStatus(row.status),
        counter_amount=(
            to_decimal(row.counter_amount) if row.counter_amount is not None else None
        ),
        expires_at=row.expires_at,
        responded_at=row.responded_at,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OfferRepository:
    async def insert_offer(self, db: AsyncSession, offer: Offer) -> Offer | None:
        result = await db.execute(
            _INSERT_OFFER_SQL,
            {
                "id": offer.id,
                "load_id": offer.load_id,
                "driver_id": offer.driver_id,
                "offer_amount": offer.offer_amount,
                "driver_payout": offer.driver_payout,
                "match_score": offer.match_score,
                "deadhead_miles": offer.deadhead_miles,
                "expires_at": offer.expires_at,
            },
        )
        row = result.fetchone()
        return _row_to_offer(row) if row is not None else None

    async def get_existing_offer_id(
        self, db: AsyncSession, load_id: str, driver_id: str
    ) -> str | None:
        result = await db.execute(
            _GET_EXISTING_ID_SQL, {"load_id": load_id, "driver_id": driver_id}
        )
        row = result.fetchone()
        return row.id if row is not None else None

    async def get_by_id(self, db: AsyncSession, offer_id: str) -> Offer | None:
        result = await db.execute(_GET_OFFER_SQL, {"offer_id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row is not None else None

    async def list_for_driver(
        self,
        db: AsyncSession,
        driver_id: str,
        status: str | None,
        limit: int,
        now: datetime,
    ) -> list[Offer]:
        result = await db.execute(
            _LIST_FOR_DRIVER_SQL,
            {"driver_id": driver_id, "status": status, "limit": limit, "now": now},
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def list_for_load(
        self, db: AsyncSession, load_id: str, status: str | None, now: datetime
    ) -> list[Offer]:
        result = await db.execute(
            _LIST_FOR_LOAD_SQL, {"load_id": load_id, "status": status, "now": now}
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def decline(
        self, db: AsyncSession, offer_id: str, now: datetime
    ) -> Offer | None:
        result = await db.execute(_DECLINE_SQL, {"offer_id": offer_id, "now": now})
        row = result.fetchone()
        return _row_to_offer(row) if row is not None else None

    async def counter(
        self, db: AsyncSession, offer_id: str, amount: Decimal, now: datetime
    ) -> Offer | None:
        result = await db.execute(
            _COUNTER_SQL, {"offer_id": offer_id, "amount": amount, "now": now}
        )
        row = result.fetchone()
        return _row_to_offer(row) if row is not None else None

    async def accept_offer(
        self,
        db: AsyncSession,
        offer_id: str,
        load_id: str,
        driver_id: str,
        now: datetime,
    ) -> AcceptResult:
        load_row = (
            await db.execute(
                _ACCEPT_ASSIGN_LOAD_SQL,
                {"load_id": load_id, "driver_id": driver_id, "now": now},
            )
        ).fetchone()
        if load_row is None:
            return AcceptResult(AcceptOutcome.LOAD_UNAVAILABLE)

        offer_row = (
            await db.execute(_ACCEPT_OFFER_SQL, {"offer_id": offer_id, "now": now})
        ).fetchone()
        if offer_row is None:
            return AcceptResult(AcceptOutcome.OFFER_NOT_PENDING)

        expired = await db.execute(
            _EXPIRE_SIBLINGS_SQL, {"load_id": load_id, "offer_id": offer_id, "now": now}
        )
        return AcceptResult(
            outcome=AcceptOutcome.ACCEPTED,
            offer=_row_to_offer(offer_row),
            shipper_id=load_row.shipper_id,
            expired_driver_ids=[row.driver_id for row in expired.fetchall()],
        )

    async def expire_stale(self, db: AsyncSession, now: datetime) -> list[Offer]:
        result = await db.execute(_EXPIRE_STALE_SQL, {"now": now})
        return [_row_to_offer(row) for row in result.fetchall()]
