"""Unit tests for LoadApplicationService using mock repositories."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.fm_common.enums import LoadStatus, LoadType, NotificationType, UserRole
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
from src.fm_gateway.auth.context import CallerContext
from src.fm_load.application.schemas import CreateLoadRequest
from src.fm_load.application.service import LoadApplicationService
from src.fm_pricing.application.service import PricingApplicationService
from src.fm_pricing.domain.models import MarketBenchmark
from tests.factories import ADMIN, DALLAS, DRIVER, HOUSTON, OTHER_DRIVER, SHIPPER, make_driver, make_load

STRANGER = CallerContext(user_id="shipper-9", role=UserRole.SHIPPER, org_id="org-9")


@pytest.fixture
def db():
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def repo():
    repo = AsyncMock()
    repo.insert.side_effect = lambda _db, load: load
    repo.expire_pending_offers.return_value = []
    return repo


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def availability():
    return AsyncMock()


@pytest.fixture
def svc(repo, notifier, availability):
    bench_repo = AsyncMock()
    bench_repo.get_benchmark.return_value = MarketBenchmark(
        equipment_group="dry_van_53", benchmark_rpm=Decimal("2.00"),
        date=date(2026, 10, 1), source="manual", confidence=Decimal("1.0"),
    )
    return LoadApplicationService(
        repo=repo,
        pricing=PricingApplicationService(repo=bench_repo),
        availability=availability,
        notifier=notifier,
    )


def _events(notifier) -> list:
    events = []
    for call in notifier.enqueue_many.call_args_list:
        events.extend(call.args[0])
    return events


class TestCreateLoad:
    async def test_quoted_price(self, svc, repo, db) -> None:
        req = CreateLoadRequest(pickup_city="Dallas", delivery_city="Houston",
                                distance_miles=Decimal("300"))

        resp = await svc.create_load(db, req, SHIPPER)

        assert resp.status == "posted"
        assert resp.shipper_id == "shipper-1"
        assert resp.driver_id is None
        assert resp.price == Decimal("732.00")
        assert resp.platform_fee == Decimal("87.84")
        assert resp.driver_payout == Decimal("644.16")
        assert resp.price_display == "$732.00"
        db.commit.assert_awaited_once()

    async def test_explicit_price_derives_fee(self, svc, db) -> None:
        req = CreateLoadRequest(distance_miles=Decimal("225"), price=Decimal("600.00"))

        resp = await svc.create_load(db, req, SHIPPER)

        assert resp.price == Decimal("600.00")
        assert resp.platform_fee == Decimal("72.00")
        assert resp.driver_payout == Decimal("528.00")

    async def test_distance_from_coordinates(self, svc, db) -> None:
        req = CreateLoadRequest(
            pickup_lat=DALLAS[0], pickup_lng=DALLAS[1],
            delivery_lat=HOUSTON[0], delivery_lng=HOUSTON[1],
            price=Decimal("500.00"),
        )

        resp = await svc.create_load(db, req, SHIPPER)

        assert Decimal("215") < resp.distance_miles < Decimal("235")
        assert resp.distance_miles == resp.distance_miles.quantize(Decimal("0.1"))

    async def test_needs_distance_or_coordinates(self, svc, db) -> None:
        with pytest.raises(InvalidLoadRequestError):
            await svc.create_load(db, CreateLoadRequest(pickup_lat=DALLAS[0]), SHIPPER)

    async def test_backhaul_only_for_standard(self, svc, db) -> None:
        req = CreateLoadRequest(distance_miles=Decimal("100"), price=Decimal("400"),
                                load_type=LoadType.HOTSHOT, is_backhaul_saver=True)
        resp = await svc.create_load(db, req, SHIPPER)
        assert resp.is_backhaul_saver is False

    async def test_drivers_cannot_post(self, svc, db, repo) -> None:
        with pytest.raises(ForbiddenActorError):
            await svc.create_load(db, CreateLoadRequest(distance_miles=Decimal("10")), DRIVER)
        repo.insert.assert_not_called()

    def test_pickup_window_order_validated(self) -> None:
        with pytest.raises(ValueError):
            CreateLoadRequest(
                distance_miles=Decimal("10"),
                pickup_window_start="2026-10-18T12:00:00Z",
                pickup_window_end="2026-10-18T10:00:00Z",
            )


class TestGetLoad:
    async def test_not_found(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = None
        with pytest.raises(LoadNotFoundError):
            await svc.get_load(db, "missing", SHIPPER)

    async def test_owner_org_member_can_read(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(shipper_id="someone-else")
        colleague = CallerContext(user_id="shipper-2", role=UserRole.SHIPPER, org_id="org-1")
        resp = await svc.get_load(db, "load-1", colleague)
        assert resp.id == "load-1"

    async def test_driver_can_browse_posted(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load()
        resp = await svc.get_load(db, "load-1", OTHER_DRIVER)
        assert resp.status == "posted"

    async def test_driver_cannot_read_someone_elses_assigned_load(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="assigned", driver_id="driver-1")
        with pytest.raises(ForbiddenActorError):
            await svc.get_load(db, "load-1", OTHER_DRIVER)

    async def test_other_shipper_forbidden(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load()
        with pytest.raises(ForbiddenActorError):
            await svc.get_load(db, "load-1", STRANGER)

    async def test_admin_reads_anything(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="completed", driver_id="driver-1")
        resp = await svc.get_load(db, "load-1", ADMIN)
        assert resp.status == "completed"


class TestTransitionLoadStatus:
    async def test_driver_advances_and_shipper_is_notified(
        self, svc, repo, db, notifier
    ) -> None:
        load = make_load(status="assigned", driver_id="driver-1")
        repo.get_by_id.return_value = load
        repo.update_status.return_value = replace(load, status="en_route_pickup")

        resp = await svc.transition_load_status(db, "load-1", LoadStatus.EN_ROUTE_PICKUP, DRIVER)

        assert resp.status == "en_route_pickup"
        args = repo.update_status.await_args.args
        assert args[2] == "assigned"
        assert args[3] == "en_route_pickup"
        db.commit.assert_awaited_once()
        events = _events(notifier)
        assert [(e.type, e.recipient_id) for e in events] == [
            (NotificationType.LOAD_STATUS_CHANGED, "shipper-1")
        ]
        assert events[0].context == {"status": "en_route_pickup", "previous_status": "assigned"}

    async def test_shipper_action_notifies_driver(self, svc, repo, db, notifier) -> None:
        load = make_load(status="delivered", driver_id="driver-1")
        repo.get_by_id.return_value = load
        repo.update_status.return_value = replace(load, status="completed")

        await svc.transition_load_status(db, "load-1", LoadStatus.COMPLETED, SHIPPER)

        assert [e.recipient_id for e in _events(notifier)] == ["driver-1"]

    async def test_stranger_forbidden(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="assigned", driver_id="driver-1")
        with pytest.raises(ForbiddenActorError):
            await svc.transition_load_status(db, "load-1", LoadStatus.EN_ROUTE_PICKUP, OTHER_DRIVER)

    async def test_admin_is_not_an_actor(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="assigned", driver_id="driver-1")
        with pytest.raises(ForbiddenActorError):
            await svc.transition_load_status(db, "load-1", LoadStatus.EN_ROUTE_PICKUP, ADMIN)

    async def test_assigned_is_system_only(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load()
        with pytest.raises(InvalidStatusTransitionError):
            await svc.transition_load_status(db, "load-1", LoadStatus.ASSIGNED, SHIPPER)

    async def test_skipping_ahead_rejected(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="assigned", driver_id="driver-1")
        with pytest.raises(InvalidStatusTransitionError):
            await svc.transition_load_status(db, "load-1", LoadStatus.DELIVERED, DRIVER)
        repo.update_status.assert_not_called()

    async def test_cancel_after_pickup_rejected(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="picked_up", driver_id="driver-1")
        with pytest.raises(LoadNotCancellableError):
            await svc.cancel_load(db, "load-1", SHIPPER)
        repo.cancel.assert_not_called()

    async def test_cancel_terminal_is_invalid_transition(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="completed", driver_id="driver-1")
        with pytest.raises(InvalidStatusTransitionError):
            await svc.cancel_load(db, "load-1", SHIPPER)

    async def test_lost_race_is_a_conflict(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(status="assigned", driver_id="driver-1")
        repo.update_status.return_value = None

        with pytest.raises(LoadStatusConflictError) as exc:
            await svc.transition_load_status(db, "load-1", LoadStatus.EN_ROUTE_PICKUP, DRIVER)
        assert exc.value.http_status == 409
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_cancel_clears_driver_and_expires_offers(
        self, svc, repo, db, notifier
    ) -> None:
        load = make_load()
        repo.get_by_id.return_value = load
        repo.cancel.return_value = replace(load, status="cancelled", cancelled_by="shipper-1")
        repo.expire_pending_offers.return_value = ["driver-1", "driver-2"]

        resp = await svc.cancel_load(db, "load-1", SHIPPER)

        assert resp.status == "cancelled"
        assert resp.cancelled_by == "shipper-1"
        args = repo.cancel.await_args.args
        assert args[2] == "posted"
        assert args[3] == "shipper-1"
        events = _events(notifier)
        assert [(e.type, e.recipient_id) for e in events] == [
            (NotificationType.OFFER_EXPIRED, "driver-1"),
            (NotificationType.OFFER_EXPIRED, "driver-2"),
        ]
        assert events[0].context == {"reason": "load_cancelled"}

    async def test_cancel_of_assigned_load_tells_the_driver(
        self, svc, repo, db, notifier
    ) -> None:
        load = make_load(status="assigned", driver_id="driver-1")
        repo.get_by_id.return_value = load
        repo.cancel.return_value = replace(load, status="cancelled", driver_id=None)

        await svc.cancel_load(db, "load-1", SHIPPER)

        events = _events(notifier)
        assert [(e.type, e.recipient_id) for e in events] == [
            (NotificationType.LOAD_STATUS_CHANGED, "driver-1")
        ]


class TestBookLoad:
    async def test_books_and_expires_other_offers(
        self, svc, repo, db, notifier
    ) -> None:
        load = make_load(allow_book_now=True)
        repo.get_by_id.return_value = load
        repo.assign_driver.return_value = replace(load, status="assigned", driver_id="driver-1")
        repo.expire_pending_offers.return_value = ["driver-1", "driver-2"]

        resp = await svc.book_load(db, "load-1", DRIVER)

        assert resp.status == "assigned"
        assert resp.driver_id == "driver-1"
        db.commit.assert_awaited_once()
        events = _events(notifier)
        assert [(e.type, e.recipient_id) for e in events] == [
            (NotificationType.LOAD_STATUS_CHANGED, "shipper-1"),
            (NotificationType.OFFER_EXPIRED, "driver-2"),
        ]
        assert events[0].context["via"] == "book_now"

    async def test_only_drivers_book(self, svc, db) -> None:
        with pytest.raises(ForbiddenActorError):
            await svc.book_load(db, "load-1", SHIPPER)

    async def test_book_now_disabled(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(allow_book_now=False)
        with pytest.raises(BookNowNotAllowedError):
            await svc.book_load(db, "load-1", DRIVER)

    async def test_already_taken(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_load(
            allow_book_now=True, status="assigned", driver_id="driver-2"
        )
        with pytest.raises(LoadNotAvailableError):
            await svc.book_load(db, "load-1", DRIVER)

    async def test_verified_only_requires_verified_driver(
        self, svc, repo, db, availability
    ) -> None:
        repo.get_by_id.return_value = make_load(allow_book_now=True, verified_only=True)
        availability.get_for_drivers.return_value = [make_driver(org_verified=False)]
        with pytest.raises(ForbiddenActorError):
            await svc.book_load(db, "load-1", DRIVER)
        repo.assign_driver.assert_not_called()

    async def test_lost_race(self, svc, repo, db) -> None:
        posted = make_load(allow_book_now=True)
        repo.get_by_id.side_effect = [
            posted, replace(posted, status="assigned", driver_id="driver-2")
        ]
        repo.assign_driver.return_value = None

        with pytest.raises(LoadNotAvailableError) as exc:
            await svc.book_load(db, "load-1", DRIVER)
        assert "assigned" in exc.value.message
        db.rollback.assert_awaited_once()
