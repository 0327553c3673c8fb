"""OfferExpirySweeper — periodic background task started in the app lifespan.

Reads never depend on it: a pending offer past expires_at already reads as
expired. The sweep only makes stored status catch up with effective status.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.fm_offer.application.service import OfferApplicationService

logger = logging.getLogger(__name__)


class OfferExpirySweeper:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        service: OfferApplicationService | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._service = service or OfferApplicationService()
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else settings.OFFER_SWEEP_INTERVAL_SECONDS
        )
        self._task: asyncio.Task[None] | None = None

    async def sweep_once(self) -> int:
        async with self._session_factory() as db:
            expired = await self._service.expire_stale_offers(db)
        if expired:
            logger.info("Offer sweep expired %d pending offers", expired)
        return expired

    async def run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Offer sweep failed; retrying in %.0fs", self._interval)
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="offer-expiry-sweeper")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
