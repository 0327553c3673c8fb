"""Concurrent acceptance: at most one offer per load can win.

An in-memory store applies the same conditional-update rules as the SQL
repository, one unit at a time under a lock; handlers interleave at every
read, as request handlers do at the storage boundary.
"""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

from src.fm_common.enums import OfferAction, UserRole
from src.fm_common.errors import LoadNotAvailableError
from src.fm_gateway.auth.context import CallerContext
from src.fm_offer.application.schemas import RespondToOfferRequest
from src.fm_offer.application.service import OfferApplicationService
from src.fm_offer.domain.models import AcceptOutcome, AcceptResult
from tests.factories import make_load, make_offer


class _Store:
    def __init__(self, load, offers) -> None:
        self.load = load
        self.offers = {o.id: o for o in offers}
        self.lock = asyncio.Lock()


class _FakeLoadRepo:
    def __init__(self, store: _Store) -> None:
        self._store = store

    async def get_by_id(self, db, load_id):
        await asyncio.sleep(0)
        return replace(self._store.load)


class _FakeOfferRepo:
    def __init__(self, store: _Store) -> None:
        self._store = store

    async def get_by_id(self, db, offer_id):
        await asyncio.sleep(0)
        offer = self._store.offers.get(offer_id)
        return replace(offer) if offer else None

    async def accept_offer(self, db, offer_id, load_id, driver_id, now):
        async with self._store.lock:
            await asyncio.sleep(0)
            load = self._store.load
            if load.status != "posted" or load.driver_id is not None:
                return AcceptResult(AcceptOutcome.LOAD_UNAVAILABLE)
            offer = self._store.offers[offer_id]
            if offer.status != "pending" or offer.expires_at <= now:
                return AcceptResult(AcceptOutcome.OFFER_NOT_PENDING)
            self._store.load = replace(load, status="assigned", driver_id=driver_id)
            accepted = replace(offer, status="accepted", responded_at=now)
            self._store.offers[offer_id] = accepted
            expired = []
            for other in list(self._store.offers.values()):
                if other.id != offer_id and other.status == "pending":
                    self._store.offers[other.id] = replace(other, status="expired")
                    expired.append(other.driver_id)
            return AcceptResult(
                outcome=AcceptOutcome.ACCEPTED,
                offer=accepted,
                shipper_id=load.shipper_id,
                expired_driver_ids=expired,
            )


def _db():
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


async def test_exactly_one_of_many_concurrent_accepts_wins() -> None:
    drivers = [f"driver-{i}" for i in range(8)]
    offers = [make_offer(id=f"offer-{d}", driver_id=d) for d in drivers]
    store = _Store(make_load(), offers)
    svc = OfferApplicationService(
        repo=_FakeOfferRepo(store),
        load_repo=_FakeLoadRepo(store),
        matching=AsyncMock(),
        notifier=MagicMock(),
    )

    async def accept(driver_id: str):
        caller = CallerContext(user_id=driver_id, role=UserRole.DRIVER)
        return await svc.respond_to_offer(
            _db(), f"offer-{driver_id}", RespondToOfferRequest(action=OfferAction.ACCEPT), caller
        )

    results = await asyncio.gather(*(accept(d) for d in drivers), return_exceptions=True)

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == len(drivers) - 1
    assert all(isinstance(e, LoadNotAvailableError) for e in losers)

    winner = winners[0].offer
    assert store.load.status == "assigned"
    assert store.load.driver_id == winner.driver_id
    statuses = {o.driver_id: o.status for o in store.offers.values()}
    assert statuses[winner.driver_id] == "accepted"
    assert [s for d, s in statuses.items() if d != winner.driver_id] == ["expired"] * 7
    assert winners[0].expired_offers == 7
