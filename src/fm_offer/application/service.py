"""OfferApplicationService — offer lifecycle manager.

create_offers fans a load out to up to N drivers; respond_to_offer resolves
one offer. Acceptance runs as a single repository unit (load assign +
offer accept + sibling expiry) that is committed only when it fully
succeeds, so at most one offer per load can ever be accepted.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.fm_common.datetime_utils import utc_now
from src.fm_common.enums import (
    ActorRole,
    LoadStatus,
    NotificationType,
    OfferAction,
    OfferStatus,
)
from src.fm_common.errors import (
    ForbiddenActorError,
    InvalidCounterAmountError,
    LoadNotAvailableError,
    LoadNotFoundError,
    OfferAlreadyResolvedError,
    OfferBatchTooLargeError,
    OfferExpiredError,
    OfferNotFoundError,
    OffersNotAllowedError,
)
from src.fm_common.id_generator import new_offer_id
from src.fm_gateway.auth.access import AccessControlProtocol, LoadAccessControl
from src.fm_gateway.auth.context import CallerContext
from src.fm_load.domain.models import Load
from src.fm_load.domain.repository import LoadRepositoryProtocol
from src.fm_load.infrastructure.persistence import LoadRepository
from src.fm_matching.application.service import MatchingApplicationService
from src.fm_notify.application.queue import NotificationQueue, get_notification_queue
from src.fm_notify.domain.events import NotificationEvent
from src.fm_offer.application.schemas import (
    CreateOffersRequest,
    OfferBatchResponse,
    OfferListResponse,
    OfferResponse,
    RespondToOfferRequest,
    RespondToOfferResponse,
)
from src.fm_offer.domain.models import (
    ACTION_TARGETS,
    DRIVER_NOT_VERIFIED,
    DUPLICATE_OFFER,
    AcceptOutcome,
    Offer,
    OfferBatch,
    OfferConflict,
    can_transition,
)
from src.fm_offer.domain.repository import OfferRepositoryProtocol
from src.fm_offer.infrastructure.persistence import OfferRepository

logger = logging.getLogger(__name__)


class OfferApplicationService:
    def __init__(
        self,
        repo: OfferRepositoryProtocol | None = None,
        load_repo: LoadRepositoryProtocol | None = None,
        matching: MatchingApplicationService | None = None,
        access: AccessControlProtocol | None = None,
        notifier: NotificationQueue | None = None,
    ) -> None:
        self._repo: OfferRepositoryProtocol = repo or OfferRepository()
        self._load_repo: LoadRepositoryProtocol = load_repo or LoadRepository()
        self._access: AccessControlProtocol = access or LoadAccessControl()
        self._matching = matching or MatchingApplicationService(load_repo=self._load_repo)
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationQueue:
        return self._notifier or get_notification_queue()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_offers(
        self,
        db: AsyncSession,
        load_id: str,
        req: CreateOffersRequest,
        caller: CallerContext,
    ) -> OfferBatchResponse:
        driver_ids = req.driver_ids
        if len(driver_ids) > settings.OFFER_MAX_BATCH_SIZE:
            raise OfferBatchTooLargeError(len(driver_ids), settings.OFFER_MAX_BATCH_SIZE)

        load = await self._get_load_or_404(db, load_id)
        if self._access.is_authorized_actor(caller, load) is not ActorRole.SHIPPER:
            raise ForbiddenActorError("Only the load's shipper can send offers")
        if load.status is not LoadStatus.POSTED:
            raise LoadNotAvailableError(load_id, load.status.value)
        if not load.allow_offers:
            raise OffersNotAllowedError(load_id)

        now = utc_now()
        expires_at = now + timedelta(minutes=req.expires_in_minutes)
        scored, availability = await self._matching.score_drivers(db, load, driver_ids)

        created: list[Offer] = []
        conflicts: list[OfferConflict] = []
        try:
            for driver_id in driver_ids:
                driver = availability.get(driver_id)
                if load.verified_only and (driver is None or not driver.org_verified):
                    conflicts.append(OfferConflict(driver_id, DRIVER_NOT_VERIFIED))
                    continue
                match = scored.get(driver_id)
                offer = Offer(
                    id=new_offer_id(),
                    load_id=load_id,
                    driver_id=driver_id,
                    offer_amount=load.price,
                    driver_payout=load.driver_payout,
                    match_score=match.score if match else None,
                    deadhead_miles=match.deadhead_miles if match else None,
                    status=OfferStatus.PENDING,
                    counter_amount=None,
                    expires_at=expires_at,
                )
                inserted = await self._repo.insert_offer(db, offer)
                if inserted is None:
                    existing_id = await self._repo.get_existing_offer_id(db, load_id, driver_id)
                    conflicts.append(OfferConflict(driver_id, DUPLICATE_OFFER, existing_id))
                    continue
                created.append(inserted)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Load %s: %d offers sent, %d conflicts, expiring %s",
            load_id, len(created), len(conflicts), expires_at.isoformat(),
        )
        self.notifier.enqueue_many(
            [
                NotificationEvent(
                    type=NotificationType.OFFER_CREATED,
                    recipient_id=o.driver_id,
                    load_id=load_id,
                    context={
                        "offer_id": o.id,
                        "driver_payout": str(o.driver_payout),
                        "expires_at": o.expires_at.isoformat(),
                        "pickup_city": load.pickup_city,
                        "delivery_city": load.delivery_city,
                    },
                )
                for o in created
            ]
        )
        return OfferBatchResponse.from_domain(
            OfferBatch(load_id, created, conflicts, expires_at)
        )

    # ------------------------------------------------------------------
    # Respond
    # ------------------------------------------------------------------

    async def respond_to_offer(
        self,
        db: AsyncSession,
        offer_id: str,
        req: RespondToOfferRequest,
        caller: CallerContext,
    ) -> RespondToOfferResponse:
        offer = await self._repo.get_by_id(db, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        if offer.driver_id != caller.user_id:
            raise ForbiddenActorError("Offer belongs to another driver")
        if req.action is OfferAction.COUNTER:
            await self._validate_counter(db, offer, req.counter_amount)
        target = ACTION_TARGETS[req.action]
        now = utc_now()
        _check_actionable(offer, target, now)

        if req.action is OfferAction.ACCEPT:
            return await self._accept(db, offer, now)
        if req.action is OfferAction.DECLINE:
            return await self._decline(db, offer, now)
        return await self._counter(db, offer, req.counter_amount, now)

    async def _accept(
        self, db: AsyncSession, offer: Offer, now: datetime
    ) -> RespondToOfferResponse:
        load = await self._load_repo.get_by_id(db, offer.load_id)
        if load is None or load.status is not LoadStatus.POSTED:
            raise LoadNotAvailableError(offer.load_id, load.status.value if load else "unknown")

        try:
            result = await self._repo.accept_offer(
                db, offer.id, offer.load_id, offer.driver_id, now
            )
            if result.outcome is AcceptOutcome.ACCEPTED:
                await db.commit()
            else:
                await db.rollback()
        except Exception:
            await db.rollback()
            raise

        if result.outcome is AcceptOutcome.LOAD_UNAVAILABLE:
            current = await self._load_repo.get_by_id(db, offer.load_id)
            logger.info("Offer %s lost the race for load %s", offer.id, offer.load_id)
            raise LoadNotAvailableError(
                offer.load_id, current.status.value if current else "unknown"
            )
        if result.outcome is AcceptOutcome.OFFER_NOT_PENDING:
            await self._raise_not_pending(db, offer.id, OfferStatus.ACCEPTED, now)

        accepted = result.offer
        logger.info(
            "Offer %s accepted: load %s assigned to %s, %d sibling offers expired",
            accepted.id, accepted.load_id, accepted.driver_id,
            len(result.expired_driver_ids),
        )
        shipper_id = result.shipper_id or load.shipper_id
        events = [
            NotificationEvent(
                type=NotificationType.OFFER_ACCEPTED,
                recipient_id=shipper_id,
                load_id=accepted.load_id,
                context={"offer_id": accepted.id, "driver_id": accepted.driver_id},
            ),
            NotificationEvent(
                type=NotificationType.LOAD_STATUS_CHANGED,
                recipient_id=shipper_id,
                load_id=accepted.load_id,
                context={
                    "status": LoadStatus.ASSIGNED.value,
                    "previous_status": LoadStatus.POSTED.value,
                    "driver_id": accepted.driver_id,
                },
            ),
        ]
        events.extend(
            NotificationEvent(
                type=NotificationType.OFFER_EXPIRED,
                recipient_id=driver_id,
                load_id=accepted.load_id,
                context={"reason": "load_assigned"},
            )
            for driver_id in result.expired_driver_ids
        )
        self.notifier.enqueue_many(events)
        return RespondToOfferResponse(
            offer=OfferResponse.from_domain(accepted),
            load_status=LoadStatus.ASSIGNED.value,
            expired_offers=len(result.expired_driver_ids),
        )

    async def _decline(
        self, db: AsyncSession, offer: Offer, now: datetime
    ) -> RespondToOfferResponse:
        try:
            updated = await self._repo.decline(db, offer.id, now)
            if updated is None:
                await db.rollback()
            else:
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        if updated is None:
            await self._raise_not_pending(db, offer.id, OfferStatus.DECLINED, now)

        logger.info("Offer %s declined by %s", offer.id, offer.driver_id)
        await self._notify_shipper(
            db, updated, NotificationType.OFFER_DECLINED, {"offer_id": updated.id}
        )
        return RespondToOfferResponse(offer=OfferResponse.from_domain(updated))

    async def _counter(
        self, db: AsyncSession, offer: Offer, amount: Decimal, now: datetime
    ) -> RespondToOfferResponse:
        try:
            updated = await self._repo.counter(db, offer.id, amount, now)
            if updated is None:
                await db.rollback()
            else:
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        if updated is None:
            await self._raise_not_pending(db, offer.id, OfferStatus.COUNTERED, now)

        logger.info("Offer %s countered by %s at %s", offer.id, offer.driver_id, amount)
        await self._notify_shipper(
            db,
            updated,
            NotificationType.OFFER_COUNTERED,
            {"offer_id": updated.id, "counter_amount": str(amount)},
        )
        return RespondToOfferResponse(offer=OfferResponse.from_domain(updated))

    async def _validate_counter(
        self, db: AsyncSession, offer: Offer, amount: Decimal | None
    ) -> None:
        if amount is None or amount <= 0:
            raise InvalidCounterAmountError()
        load = await self._load_repo.get_by_id(db, offer.load_id)
        if load is not None and load.min_offer is not None and amount < load.min_offer:
            raise InvalidCounterAmountError(load.min_offer)

    async def _raise_not_pending(
        self, db: AsyncSession, offer_id: str, target: OfferStatus, now: datetime
    ) -> None:
        """A conditional offer write matched nothing: report why."""
        current = await self._repo.get_by_id(db, offer_id)
        if current is None:
            raise OfferNotFoundError(offer_id)
        _check_actionable(current, target, now)
        raise OfferAlreadyResolvedError(offer_id, current.status.value)

    async def _notify_shipper(
        self, db: AsyncSession, offer: Offer, event_type: NotificationType, context: dict
    ) -> None:
        load = await self._load_repo.get_by_id(db, offer.load_id)
        if load is None:
            return
        self.notifier.enqueue(
            NotificationEvent(
                type=event_type,
                recipient_id=load.shipper_id,
                load_id=offer.load_id,
                context={**context, "driver_id": offer.driver_id},
            )
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_offer(
        self, db: AsyncSession, offer_id: str, caller: CallerContext
    ) -> OfferResponse:
        offer = await self._repo.get_by_id(db, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        if not caller.is_admin and offer.driver_id != caller.user_id:
            load = await self._load_repo.get_by_id(db, offer.load_id)
            role = self._access.is_authorized_actor(caller, load) if load else None
            if role is not ActorRole.SHIPPER:
                raise ForbiddenActorError()
        return OfferResponse.from_domain(offer.as_of(utc_now()))

    async def list_offers_for_driver(
        self,
        db: AsyncSession,
        caller: CallerContext,
        status: OfferStatus | None,
        limit: int,
    ) -> OfferListResponse:
        offers = await self._repo.list_for_driver(
            db, caller.user_id, status.value if status else None, limit, utc_now()
        )
        return OfferListResponse(items=[OfferResponse.from_domain(o) for o in offers])

    async def list_offers_for_load(
        self,
        db: AsyncSession,
        load_id: str,
        caller: CallerContext,
        status: OfferStatus | None,
    ) -> OfferListResponse:
        load = await self._get_load_or_404(db, load_id)
        if (
            not caller.is_admin
            and self._access.is_authorized_actor(caller, load) is not ActorRole.SHIPPER
        ):
            raise ForbiddenActorError("Only the load's shipper can list its offers")
        offers = await self._repo.list_for_load(
            db, load_id, status.value if status else None, utc_now()
        )
        return OfferListResponse(items=[OfferResponse.from_domain(o) for o in offers])

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def expire_stale_offers(self, db: AsyncSession) -> int:
        """Physically flip pending offers past expiry to expired."""
        try:
            expired = await self._repo.expire_stale(db, utc_now())
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self.notifier.enqueue_many(
            [
                NotificationEvent(
                    type=NotificationType.OFFER_EXPIRED,
                    recipient_id=o.driver_id,
                    load_id=o.load_id,
                    context={"offer_id": o.id, "reason": "timeout"},
                )
                for o in expired
            ]
        )
        return len(expired)

    async def _get_load_or_404(self, db: AsyncSession, load_id: str) -> Load:
        load = await self._load_repo.get_by_id(db, load_id)
        if load is None:
            raise LoadNotFoundError(load_id)
        return load


def _check_actionable(offer: Offer, target: OfferStatus, now: datetime) -> None:
    """Raise unless the offer may move to target right now.

    Timing out is reported as expired whether or not the sweeper has
    rewritten the row; any other resolution is reported as a conflict.
    """
    if can_transition(offer.status, target):
        if offer.is_past_expiry(now):
            raise OfferExpiredError(offer.id)
        return
    if offer.status is OfferStatus.EXPIRED and offer.is_past_expiry(now):
        raise OfferExpiredError(offer.id)
    raise OfferAlreadyResolvedError(offer.id, offer.status.value)
