"""LoadApplicationService — load posting and the load status controller.

Every status write is conditional on the status that was read, so two
writers racing on the same load cannot both succeed; the loser gets a 409.
Notifications are enqueued only after the unit has committed.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.datetime_utils import utc_now
from src.fm_common.enums import (
    ActorRole,
    LoadStatus,
    LoadType,
    NotificationType,
    UserRole,
)
from src.fm_common.errors import (
    BookNowNotAllowedError,
    ForbiddenActorError,
    InvalidLoadRequestError,
    InvalidStatusTransitionError,
    LoadNotAvailableError,
    LoadNotCancellableError,
    LoadNotFoundError,
    LoadStatusConflictError,
)
from src.fm_common.id_generator import new_load_id
from src.fm_common.money import round_money, to_decimal
from src.fm_gateway.auth.access import AccessControlProtocol, LoadAccessControl
from src.fm_gateway.auth.context import CallerContext
from src.fm_load.application.schemas import CreateLoadRequest, LoadResponse
from src.fm_load.domain.models import Load
from src.fm_load.domain.repository import LoadRepositoryProtocol
from src.fm_load.domain.state_machine import (
    CANCELLABLE_STATUSES,
    SYSTEM_ONLY_TARGETS,
    can_transition,
    is_terminal,
)
from src.fm_load.infrastructure.persistence import LoadRepository
from src.fm_matching.domain.geo import haversine_miles
from src.fm_matching.domain.repository import DriverAvailabilityProviderProtocol
from src.fm_matching.infrastructure.persistence import SqlDriverAvailabilityProvider
from src.fm_notify.application.queue import NotificationQueue, get_notification_queue
from src.fm_notify.domain.events import NotificationEvent
from src.fm_pricing.application.service import PricingApplicationService
from src.fm_pricing.domain.engine import calculate_platform_fee

logger = logging.getLogger(__name__)


class LoadApplicationService:
    def __init__(
        self,
        repo: LoadRepositoryProtocol | None = None,
        access: AccessControlProtocol | None = None,
        pricing: PricingApplicationService | None = None,
        availability: DriverAvailabilityProviderProtocol | None = None,
        notifier: NotificationQueue | None = None,
    ) -> None:
        self._repo: LoadRepositoryProtocol = repo or LoadRepository()
        self._access: AccessControlProtocol = access or LoadAccessControl()
        self._pricing = pricing or PricingApplicationService()
        self._availability: DriverAvailabilityProviderProtocol = (
            availability or SqlDriverAvailabilityProvider()
        )
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationQueue:
        return self._notifier or get_notification_queue()

    # ------------------------------------------------------------------
    # Posting / reads
    # ------------------------------------------------------------------

    async def create_load(
        self, db: AsyncSession, req: CreateLoadRequest, caller: CallerContext
    ) -> LoadResponse:
        if caller.role is not UserRole.SHIPPER:
            raise ForbiddenActorError("Only shippers can post loads")

        distance = _resolve_distance(req)
        if req.price is not None:
            price = req.price
            fee, _ = calculate_platform_fee(price)
            platform_fee = round_money(fee)
            driver_payout = round_money(price - platform_fee)
            is_backhaul = req.is_backhaul_saver and req.load_type is LoadType.STANDARD
        else:
            quote, _ = await self._pricing.quote(
                db, distance, req.load_type.value,
                req.vehicle_type_required, req.is_backhaul_saver,
            )
            price = quote.total
            platform_fee = quote.platform_fee
            driver_payout = quote.driver_payout
            is_backhaul = quote.is_backhaul_saver

        now = utc_now()
        load = Load(
            id=new_load_id(),
            shipper_id=caller.user_id,
            posted_by_org_id=caller.org_id,
            status=LoadStatus.POSTED,
            load_type=req.load_type.value,
            description=req.description,
            pickup_address=req.pickup_address,
            pickup_city=req.pickup_city,
            pickup_state=req.pickup_state,
            pickup_lat=req.pickup_lat,
            pickup_lng=req.pickup_lng,
            delivery_address=req.delivery_address,
            delivery_city=req.delivery_city,
            delivery_state=req.delivery_state,
            delivery_lat=req.delivery_lat,
            delivery_lng=req.delivery_lng,
            pickup_window_start=req.pickup_window_start,
            pickup_window_end=req.pickup_window_end,
            delivery_window_end=req.delivery_window_end,
            distance_miles=distance,
            weight_lbs=req.weight_lbs,
            pieces=req.pieces,
            is_fragile=req.is_fragile,
            requires_liftgate=req.requires_liftgate,
            requires_pallet_jack=req.requires_pallet_jack,
            vehicle_type_required=req.vehicle_type_required,
            is_backhaul_saver=is_backhaul,
            price=price,
            driver_payout=driver_payout,
            platform_fee=platform_fee,
            driver_id=None,
            allow_offers=req.allow_offers,
            allow_book_now=req.allow_book_now,
            min_offer=req.min_offer,
            verified_only=req.verified_only,
            posted_at=now,
        )
        try:
            created = await self._repo.insert(db, load)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Load %s posted by %s: %s mi, price %s", created.id, caller.user_id,
            created.distance_miles, created.price,
        )
        return LoadResponse.from_domain(created)

    async def get_load(
        self, db: AsyncSession, load_id: str, caller: CallerContext
    ) -> LoadResponse:
        load = await self._get_or_404(db, load_id)
        if caller.is_admin or self._access.is_authorized_actor(caller, load) is not None:
            return LoadResponse.from_domain(load)
        # Drivers browse open loads before they are assigned
        if caller.role is UserRole.DRIVER and load.status is LoadStatus.POSTED:
            return LoadResponse.from_domain(load)
        raise ForbiddenActorError()

    # ------------------------------------------------------------------
    # Status controller
    # ------------------------------------------------------------------

    async def transition_load_status(
        self,
        db: AsyncSession,
        load_id: str,
        new_status: LoadStatus,
        caller: CallerContext,
    ) -> LoadResponse:
        load = await self._get_or_404(db, load_id)
        actor = self._access.is_authorized_actor(caller, load)
        if actor is None:
            raise ForbiddenActorError(
                "Only the load's shipper or assigned driver may change its status"
            )

        current = load.status
        if new_status in SYSTEM_ONLY_TARGETS:
            raise InvalidStatusTransitionError(current.value, new_status.value)
        if (
            new_status is LoadStatus.CANCELLED
            and current not in CANCELLABLE_STATUSES
            and not is_terminal(current)
        ):
            raise LoadNotCancellableError(current.value)
        if not can_transition(current, new_status):
            raise InvalidStatusTransitionError(current.value, new_status.value)

        now = utc_now()
        expired_drivers: list[str] = []
        try:
            if new_status is LoadStatus.CANCELLED:
                updated = await self._repo.cancel(db, load_id, current.value, caller.user_id, now)
                if updated is not None:
                    expired_drivers = await self._repo.expire_pending_offers(db, load_id, now)
            else:
                updated = await self._repo.update_status(
                    db, load_id, current.value, new_status.value, now
                )
            if updated is None:
                raise LoadStatusConflictError(load_id, current.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Load %s: %s -> %s by %s (%s)",
            load_id, current.value, new_status.value, caller.user_id, actor.value,
        )
        events = _status_events(load, updated, actor, current)
        events.extend(_expired_offer_events(load_id, expired_drivers, "load_cancelled"))
        self.notifier.enqueue_many(events)
        return LoadResponse.from_domain(updated)

    async def cancel_load(
        self, db: AsyncSession, load_id: str, caller: CallerContext
    ) -> LoadResponse:
        return await self.transition_load_status(db, load_id, LoadStatus.CANCELLED, caller)

    async def book_load(
        self, db: AsyncSession, load_id: str, caller: CallerContext
    ) -> LoadResponse:
        """Driver takes a book-now load directly, bypassing offers."""
        if caller.role is not UserRole.DRIVER:
            raise ForbiddenActorError("Only drivers can book loads")
        load = await self._get_or_404(db, load_id)
        if not load.allow_book_now:
            raise BookNowNotAllowedError(load_id)
        if load.status is not LoadStatus.POSTED:
            raise LoadNotAvailableError(load_id, load.status.value)
        if load.verified_only:
            availability = await self._availability.get_for_drivers(db, [caller.user_id])
            if not any(a.org_verified for a in availability):
                raise ForbiddenActorError("Load requires a verified carrier")

        now = utc_now()
        try:
            assigned = await self._repo.assign_driver(db, load_id, caller.user_id, now)
            if assigned is None:
                current = await self._repo.get_by_id(db, load_id)
                raise LoadNotAvailableError(
                    load_id, current.status.value if current else "unknown"
                )
            expired_drivers = await self._repo.expire_pending_offers(db, load_id, now)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Load %s booked by driver %s", load_id, caller.user_id)
        events = [
            NotificationEvent(
                type=NotificationType.LOAD_STATUS_CHANGED,
                recipient_id=assigned.shipper_id,
                load_id=load_id,
                context={
                    "status": LoadStatus.ASSIGNED.value,
                    "previous_status": LoadStatus.POSTED.value,
                    "driver_id": caller.user_id,
                    "via": "book_now",
                },
            )
        ]
        events.extend(
            _expired_offer_events(
                load_id,
                [d for d in expired_drivers if d != caller.user_id],
                "load_booked",
            )
        )
        self.notifier.enqueue_many(events)
        return LoadResponse.from_domain(assigned)

    async def _get_or_404(self, db: AsyncSession, load_id: str) -> Load:
        load = await self._repo.get_by_id(db, load_id)
        if load is None:
            raise LoadNotFoundError(load_id)
        return load


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_distance(req: CreateLoadRequest) -> Decimal:
    if req.distance_miles is not None:
        return req.distance_miles
    coords = (req.pickup_lat, req.pickup_lng, req.delivery_lat, req.delivery_lng)
    if any(c is None for c in coords):
        raise InvalidLoadRequestError(
            "distance_miles or both pickup and delivery coordinates are required"
        )
    miles = to_decimal(round(haversine_miles(*coords), 1))
    if miles <= 0:
        raise InvalidLoadRequestError("pickup and delivery must be different locations")
    return miles


def _status_events(
    before: Load, after: Load, actor: ActorRole, previous: LoadStatus
) -> list[NotificationEvent]:
    """load_status_changed for the counterpart(s) of the actor."""
    context = {"status": after.status.value, "previous_status": previous.value}
    recipients: list[str] = []
    if actor is ActorRole.DRIVER:
        recipients.append(before.shipper_id)
    # The pre-update driver: cancellation clears driver_id
    elif before.driver_id is not None:
        recipients.append(before.driver_id)
    return [
        NotificationEvent(
            type=NotificationType.LOAD_STATUS_CHANGED,
            recipient_id=recipient,
            load_id=after.id,
            context=context,
        )
        for recipient in recipients
    ]


def _expired_offer_events(
    load_id: str, driver_ids: list[str], reason: str
) -> list[NotificationEvent]:
    return [
        NotificationEvent(
            type=NotificationType.OFFER_EXPIRED,
            recipient_id=driver_id,
            load_id=load_id,
            context={"reason": reason},
        )
        for driver_id in driver_ids
    ]
