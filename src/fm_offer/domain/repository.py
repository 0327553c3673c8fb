# src/fm_offer/domain/repository.py
"""Repository Protocol for offers.

Unit tests inject a mock or an in-memory fake conforming to this Protocol.
accept_offer is the single atomic unit behind offer acceptance: it never
commits itself, the caller commits on ACCEPTED and rolls back otherwise.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_offer.domain.models import AcceptResult, Offer


class OfferRepositoryProtocol(Protocol):
    async def insert_offer(self, db: AsyncSession, offer: Offer) -> Offer | None:
        """Insert; None when an offer for (load_id, driver_id) already exists."""
        ...

    async def get_existing_offer_id(
        self, db: AsyncSession, load_id: str, driver_id: str
    ) -> str | None: ...

    async def get_by_id(self, db: AsyncSession, offer_id: str) -> Offer | None: ...

    async def list_for_driver(
        self,
        db: AsyncSession,
        driver_id: str,
        status: str | None,
        limit: int,
        now: datetime,
    ) -> list[Offer]: ...

    async def list_for_load(
        self, db: AsyncSession, load_id: str, status: str | None, now: datetime
    ) -> list[Offer]: ...

    async def decline(
        self, db: AsyncSession, offer_id: str, now: datetime
    ) -> Offer | None: ...

    async def counter(
        self, db: AsyncSession, offer_id: str, amount: Decimal, now: datetime
    ) -> Offer | None: ...

    async def accept_offer(
        self,
        db: AsyncSession,
        offer_id: str,
        load_id: str,
        driver_id: str,
        now: datetime,
    ) -> AcceptResult: ...

    async def expire_stale(self, db: AsyncSession, now: datetime) -> list[Offer]: ...
