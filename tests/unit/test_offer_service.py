"""Unit tests for OfferApplicationService using mock repositories."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.fm_common.enums import NotificationType, OfferAction, OfferStatus
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
from src.fm_matching.domain.models import MatchCandidate
from src.fm_offer.application.schemas import CreateOffersRequest, RespondToOfferRequest
from src.fm_offer.application.service import OfferApplicationService
from src.fm_offer.domain.models import AcceptOutcome, AcceptResult
from tests.factories import ADMIN, DRIVER, OTHER_DRIVER, SHIPPER, make_driver, make_load, make_offer


def _candidate(driver_id: str, score: int = 88, deadhead: float = 4.2) -> MatchCandidate:
    return MatchCandidate(
        driver_id=driver_id, availability_id=None, score=score, deadhead_miles=deadhead,
        detour_miles=0.0, rating=None, equipment=None, match_label="tight_fit",
        quality_tier="perfect", eta_to_pickup_minutes=5, estimated_payout=Decimal("528.00"),
    )


def _past() -> datetime:
    return datetime.now(UTC) - timedelta(minutes=1)


@pytest.fixture
def db():
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def repo():
    repo = AsyncMock()
    repo.insert_offer.side_effect = lambda _db, offer: offer
    return repo


@pytest.fixture
def load_repo():
    load_repo = AsyncMock()
    load_repo.get_by_id.return_value = make_load()
    return load_repo


@pytest.fixture
def matching():
    matching = AsyncMock()
    matching.score_drivers.return_value = ({}, {})
    return matching


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def svc(repo, load_repo, matching, notifier):
    return OfferApplicationService(
        repo=repo, load_repo=load_repo, matching=matching, notifier=notifier
    )


def _events(notifier) -> list:
    events = []
    for call in notifier.enqueue_many.call_args_list:
        events.extend(call.args[0])
    events.extend(call.args[0] for call in notifier.enqueue.call_args_list)
    return events


class TestCreateOffers:
    async def test_creates_pending_offers_with_scores(
        self, svc, repo, matching, db, notifier
    ) -> None:
        matching.score_drivers.return_value = (
            {"d1": _candidate("d1", 91, 3.5)},
            {"d1": make_driver("d1"), "d2": make_driver("d2")},
        )

        resp = await svc.create_offers(
            db, "load-1", CreateOffersRequest(driver_ids=["d1", "d2"], expires_in_minutes=15), SHIPPER
        )

        assert [o.driver_id for o in resp.offers] == ["d1", "d2"]
        assert resp.offers[0].match_score == 91
        assert resp.offers[0].deadhead_miles == 3.5
        assert resp.offers[1].match_score is None
        assert all(o.status == "pending" for o in resp.offers)
        assert all(o.offer_amount == Decimal("600.00") for o in resp.offers)
        assert all(o.driver_payout == Decimal("528.00") for o in resp.offers)
        assert resp.conflicts == []
        db.commit.assert_awaited_once()
        events = _events(notifier)
        assert [(e.type, e.recipient_id) for e in events] == [
            (NotificationType.OFFER_CREATED, "d1"),
            (NotificationType.OFFER_CREATED, "d2"),
        ]

    async def test_expiry_window(self, svc, db) -> None:
        before = datetime.now(UTC)
        resp = await svc.create_offers(
            db, "load-1", CreateOffersRequest(driver_ids=["d1"], expires_in_minutes=15), SHIPPER
        )
        expires_at = datetime.fromisoformat(resp.expires_at)
        assert before + timedelta(minutes=15) <= expires_at
        assert expires_at <= datetime.now(UTC) + timedelta(minutes=15)

    async def test_duplicate_is_reported_not_raised(self, svc, repo, db) -> None:
        repo.insert_offer.side_effect = lambda _db, offer: (
            None if offer.driver_id == "d2" else offer
        )
        repo.get_existing_offer_id.return_value = "offer-old"

        resp = await svc.create_offers(
            db, "load-1", CreateOffersRequest(driver_ids=["d1", "d2"]), SHIPPER
        )

        assert [o.driver_id for o in resp.offers] == ["d1"]
        assert len(resp.conflicts) == 1
        conflict = resp.conflicts[0]
        assert conflict.driver_id == "d2"
        assert conflict.code == "DUPLICATE_OFFER"
        assert conflict.existing_offer_id == "offer-old"

    async def test_verified_only_skips_unverified(
        self, svc, load_repo, matching, repo, db
    ) -> None:
        load_repo.get_by_id.return_value = make_load(verified_only=True)
        matching.score_drivers.return_value = (
            {},
            {"d1": make_driver("d1", org_verified=True), "d2": make_driver("d2")},
        )

        resp = await svc.create_offers(
            db, "load-1", CreateOffersRequest(driver_ids=["d1", "d2", "d3"]), SHIPPER
        )

        assert [o.driver_id for o in resp.offers] == ["d1"]
        assert [(c.driver_id, c.code) for c in resp.conflicts] == [
            ("d2", "DRIVER_NOT_VERIFIED"),
            ("d3", "DRIVER_NOT_VERIFIED"),
        ]
        assert repo.insert_offer.await_count == 1

    async def test_batch_limit(self, svc, db, load_repo) -> None:
        req = CreateOffersRequest(driver_ids=[f"d{i}" for i in range(11)])
        with pytest.raises(OfferBatchTooLargeError):
            await svc.create_offers(db, "load-1", req, SHIPPER)
        load_repo.get_by_id.assert_not_called()

    async def test_load_not_found(self, svc, load_repo, db) -> None:
        load_repo.get_by_id.return_value = None
        with pytest.raises(LoadNotFoundError):
            await svc.create_offers(db, "nope", CreateOffersRequest(driver_ids=["d1"]), SHIPPER)

    async def test_only_the_shipper(self, svc, db) -> None:
        with pytest.raises(ForbiddenActorError):
            await svc.create_offers(db, "load-1", CreateOffersRequest(driver_ids=["d1"]), DRIVER)

    async def test_load_must_be_posted(self, svc, load_repo, db) -> None:
        load_repo.get_by_id.return_value = make_load(status="assigned", driver_id="d9")
        with pytest.raises(LoadNotAvailableError):
            await svc.create_offers(db, "load-1", CreateOffersRequest(driver_ids=["d1"]), SHIPPER)

    async def test_offers_disabled(self, svc, load_repo, db) -> None:
        load_repo.get_by_id.return_value = make_load(allow_offers=False)
        with pytest.raises(OffersNotAllowedError):
            await svc.create_offers(db, "load-1", CreateOffersRequest(driver_ids=["d1"]), SHIPPER)

    async def test_rollback_on_storage_error(self, svc, repo, db, notifier) -> None:
        repo.insert_offer.side_effect = RuntimeError("db down")
        with pytest.raises(RuntimeError):
            await svc.create_offers(db, "load-1", CreateOffersRequest(driver_ids=["d1"]), SHIPPER)
        db.rollback.assert_awaited_once()
        notifier.enqueue_many.assert_not_called()


class TestCreateOffersRequest:
    def test_dedupes_in_order(self) -> None:
        req = CreateOffersRequest(driver_ids=["d2", "d1", "d2", " ", "d1"])
        assert req.driver_ids == ["d2", "d1"]

    def test_default_expiry(self) -> None:
        assert CreateOffersRequest(driver_ids=["d1"]).expires_in_minutes == 10

    def test_rejects_empty(self) -> None:
        with pytest.raises(ValueError):
            CreateOffersRequest(driver_ids=[])
        with pytest.raises(ValueError):
            CreateOffersRequest(driver_ids=["", "  "])


class TestRespondValidation:
    async def test_not_found(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = None
        with pytest.raises(OfferNotFoundError):
            await svc.respond_to_offer(
                db, "x", RespondToOfferRequest(action=OfferAction.DECLINE), DRIVER
            )

    async def test_other_driver_forbidden(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_offer()
        with pytest.raises(ForbiddenActorError):
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.ACCEPT), OTHER_DRIVER
            )

    @pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-5")])
    async def test_counter_needs_positive_amount(self, svc, repo, db, amount) -> None:
        repo.get_by_id.return_value = make_offer()
        req = RespondToOfferRequest(action=OfferAction.COUNTER, counter_amount=amount)
        with pytest.raises(InvalidCounterAmountError):
            await svc.respond_to_offer(db, "offer-1", req, DRIVER)
        repo.counter.assert_not_called()

    async def test_pending_past_expiry_is_expired(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_offer(expires_at=_past())
        with pytest.raises(OfferExpiredError) as exc:
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.ACCEPT), DRIVER
            )
        assert exc.value.http_status == 410
        repo.accept_offer.assert_not_called()

    async def test_swept_offer_is_expired(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_offer(status="expired", expires_at=_past())
        with pytest.raises(OfferExpiredError):
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.DECLINE), DRIVER
            )

    async def test_expired_by_sibling_acceptance_is_a_conflict(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_offer(status="expired")
        with pytest.raises(OfferAlreadyResolvedError) as exc:
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.ACCEPT), DRIVER
            )
        assert exc.value.current_status == "expired"
        assert exc.value.http_status == 409

    @pytest.mark.parametrize("status", ["accepted", "declined", "countered"])
    async def test_resolved_offer_is_a_conflict(self, svc, repo, db, status) -> None:
        repo.get_by_id.return_value = make_offer(status=status)
        with pytest.raises(OfferAlreadyResolvedError) as exc:
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.DECLINE), DRIVER
            )
        assert exc.value.current_status == status


class TestAccept:
    async def test_accept_assigns_and_notifies(self, svc, repo, db, notifier) -> None:
        offer = make_offer()
        repo.get_by_id.return_value = offer
        repo.accept_offer.return_value = AcceptResult(
            outcome=AcceptOutcome.ACCEPTED,
            offer=replace(offer, status="accepted"),
            shipper_id="shipper-1",
            expired_driver_ids=["driver-2", "driver-3"],
        )

        resp = await svc.respond_to_offer(
            db, "offer-1", RespondToOfferRequest(action=OfferAction.ACCEPT), DRIVER
        )

        assert resp.offer.status == "accepted"
        assert resp.load_status == "assigned"
        assert resp.expired_offers == 2
        db.commit.assert_awaited_once()
        events = _events(notifier)
        assert [(e.type, e.recipient_id) for e in events] == [
            (NotificationType.OFFER_ACCEPTED, "shipper-1"),
            (NotificationType.LOAD_STATUS_CHANGED, "shipper-1"),
            (NotificationType.OFFER_EXPIRED, "driver-2"),
            (NotificationType.OFFER_EXPIRED, "driver-3"),
        ]

    async def test_load_no_longer_posted(self, svc, repo, load_repo, db) -> None:
        repo.get_by_id.return_value = make_offer()
        load_repo.get_by_id.return_value = make_load(status="cancelled")
        with pytest.raises(LoadNotAvailableError):
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.ACCEPT), DRIVER
            )
        repo.accept_offer.assert_not_called()

    async def test_lost_race_rolls_back(self, svc, repo, load_repo, db, notifier) -> None:
        repo.get_by_id.return_value = make_offer()
        load_repo.get_by_id.side_effect = [
            make_load(), make_load(status="assigned", driver_id="driver-2")
        ]
        repo.accept_offer.return_value = AcceptResult(AcceptOutcome.LOAD_UNAVAILABLE)

        with pytest.raises(LoadNotAvailableError):
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.ACCEPT), DRIVER
            )
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()
        assert _events(notifier) == []

    async def test_offer_resolved_meanwhile(self, svc, repo, db) -> None:
        repo.get_by_id.side_effect = [make_offer(), make_offer(status="declined")]
        repo.accept_offer.return_value = AcceptResult(AcceptOutcome.OFFER_NOT_PENDING)

        with pytest.raises(OfferAlreadyResolvedError):
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.ACCEPT), DRIVER
            )
        db.rollback.assert_awaited_once()


class TestDeclineAndCounter:
    async def test_decline(self, svc, repo, db, notifier) -> None:
        offer = make_offer()
        repo.get_by_id.return_value = offer
        repo.decline.return_value = replace(offer, status="declined", responded_at=datetime.now(UTC))

        resp = await svc.respond_to_offer(
            db, "offer-1", RespondToOfferRequest(action=OfferAction.DECLINE), DRIVER
        )

        assert resp.offer.status == "declined"
        assert resp.load_status is None
        db.commit.assert_awaited_once()
        events = _events(notifier)
        assert [(e.type, e.recipient_id) for e in events] == [
            (NotificationType.OFFER_DECLINED, "shipper-1")
        ]

    async def test_counter_records_amount(self, svc, repo, db, notifier) -> None:
        offer = make_offer()
        repo.get_by_id.return_value = offer
        repo.counter.return_value = replace(
            offer, status="countered", counter_amount=Decimal("675.00")
        )

        resp = await svc.respond_to_offer(
            db, "offer-1",
            RespondToOfferRequest(action=OfferAction.COUNTER, counter_amount=Decimal("675.00")),
            DRIVER,
        )

        assert resp.offer.status == "countered"
        assert resp.offer.counter_amount == Decimal("675.00")
        assert repo.counter.await_args.args[2] == Decimal("675.00")
        events = _events(notifier)
        assert events[0].type is NotificationType.OFFER_COUNTERED
        assert events[0].context["counter_amount"] == "675.00"

    async def test_counter_below_min_offer_rejected(self, svc, repo, load_repo, db) -> None:
        repo.get_by_id.return_value = make_offer()
        load_repo.get_by_id.return_value = make_load(min_offer=Decimal("550.00"))
        req = RespondToOfferRequest(action=OfferAction.COUNTER, counter_amount=Decimal("1.00"))

        with pytest.raises(InvalidCounterAmountError) as exc:
            await svc.respond_to_offer(db, "offer-1", req, DRIVER)

        assert exc.value.http_status == 422
        assert exc.value.minimum == Decimal("550.00")
        assert "550.00" in exc.value.message
        repo.counter.assert_not_called()

    async def test_counter_at_min_offer_accepted(self, svc, repo, load_repo, db) -> None:
        offer = make_offer()
        repo.get_by_id.return_value = offer
        load_repo.get_by_id.return_value = make_load(min_offer=Decimal("550.00"))
        repo.counter.return_value = replace(
            offer, status="countered", counter_amount=Decimal("550.00")
        )
        req = RespondToOfferRequest(action=OfferAction.COUNTER, counter_amount=Decimal("550.00"))

        resp = await svc.respond_to_offer(db, "offer-1", req, DRIVER)

        assert resp.offer.status == "countered"
        repo.counter.assert_awaited_once()

    async def test_decline_race_with_expiry(self, svc, repo, db) -> None:
        offer = make_offer()
        repo.get_by_id.side_effect = [offer, replace(offer, status="accepted")]
        repo.decline.return_value = None

        with pytest.raises(OfferAlreadyResolvedError):
            await svc.respond_to_offer(
                db, "offer-1", RespondToOfferRequest(action=OfferAction.DECLINE), DRIVER
            )
        db.rollback.assert_awaited_once()


class TestReads:
    async def test_get_offer_reports_effective_status(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_offer(expires_at=_past())
        resp = await svc.get_offer(db, "offer-1", DRIVER)
        assert resp.status == "expired"

    async def test_shipper_can_read(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_offer()
        resp = await svc.get_offer(db, "offer-1", SHIPPER)
        assert resp.status == "pending"

    async def test_admin_can_read(self, svc, repo, db, load_repo) -> None:
        repo.get_by_id.return_value = make_offer()
        await svc.get_offer(db, "offer-1", ADMIN)
        load_repo.get_by_id.assert_not_called()

    async def test_other_driver_cannot_read(self, svc, repo, db) -> None:
        repo.get_by_id.return_value = make_offer()
        with pytest.raises(ForbiddenActorError):
            await svc.get_offer(db, "offer-1", OTHER_DRIVER)

    async def test_list_for_driver(self, svc, repo, db) -> None:
        repo.list_for_driver.return_value = [make_offer(), make_offer(id="offer-2")]
        resp = await svc.list_offers_for_driver(db, DRIVER, OfferStatus.PENDING, 20)
        assert [o.id for o in resp.items] == ["offer-1", "offer-2"]
        args = repo.list_for_driver.await_args.args
        assert args[1:4] == ("driver-1", "pending", 20)

    async def test_list_for_load_shipper_only(self, svc, repo, db) -> None:
        repo.list_for_load.return_value = [make_offer()]
        resp = await svc.list_offers_for_load(db, "load-1", SHIPPER, None)
        assert len(resp.items) == 1
        with pytest.raises(ForbiddenActorError):
            await svc.list_offers_for_load(db, "load-1", DRIVER, None)


class TestExpireStale:
    async def test_commits_and_notifies(self, svc, repo, db, notifier) -> None:
        repo.expire_stale.return_value = [
            make_offer(status="expired"), make_offer(id="offer-2", driver_id="driver-2", status="expired")
        ]

        count = await svc.expire_stale_offers(db)

        assert count == 2
        db.commit.assert_awaited_once()
        events = _events(notifier)
        assert [e.recipient_id for e in events] == ["driver-1", "driver-2"]
        assert all(e.context["reason"] == "timeout" for e in events)

    async def test_nothing_to_expire(self, svc, repo, db, notifier) -> None:
        repo.expire_stale.return_value = []
        assert await svc.expire_stale_offers(db) == 0
        assert _events(notifier) == []
