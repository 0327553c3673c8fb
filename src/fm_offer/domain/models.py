"""Domain models for fm_offer — offer lifecycle state machine + dataclasses.

pending → accepted | declined | countered | expired; every target is final.
A pending offer whose expires_at has passed is expired for every reader,
whether or not the sweeper has rewritten its row yet.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from src.fm_common.enums import OfferAction, OfferStatus

OFFER_TRANSITIONS: dict[OfferStatus, frozenset[OfferStatus]] = {
    OfferStatus.PENDING: frozenset(
        {
            OfferStatus.ACCEPTED,
            OfferStatus.DECLINED,
            OfferStatus.COUNTERED,
            OfferStatus.EXPIRED,
        }
    ),
    OfferStatus.ACCEPTED: frozenset(),
    OfferStatus.DECLINED: frozenset(),
    OfferStatus.COUNTERED: frozenset(),
    OfferStatus.EXPIRED: frozenset(),
}


def can_transition(current: OfferStatus, target: OfferStatus) -> bool:
    return target in OFFER_TRANSITIONS.get(current, frozenset())


ACTION_TARGETS: dict[OfferAction, OfferStatus] = {
    OfferAction.ACCEPT: OfferStatus.ACCEPTED,
    OfferAction.DECLINE: OfferStatus.DECLINED,
    OfferAction.COUNTER: OfferStatus.COUNTERED,
}


@dataclass
class Offer:
    id: str
    load_id: str
    driver_id: str
    offer_amount: Decimal
    driver_payout: Decimal
    match_score: int | None
    deadhead_miles: float | None
    status: OfferStatus
    counter_amount: Decimal | None
    expires_at: datetime
    responded_at: datetime | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = OfferStatus(self.status)

    def is_past_expiry(self, now: datetime) -> bool:
        return now >= self.expires_at

    def effective_status(self, now: datetime) -> OfferStatus:
        if self.status is OfferStatus.PENDING and self.is_past_expiry(now):
            return OfferStatus.EXPIRED
        return self.status

    def as_of(self, now: datetime) -> "Offer":
        """Copy carrying the effective status."""
        return replace(self, status=self.effective_status(now))


class AcceptOutcome(str, Enum):
    ACCEPTED = "accepted"
    LOAD_UNAVAILABLE = "load_unavailable"
    OFFER_NOT_PENDING = "offer_not_pending"


@dataclass(frozen=True)
class AcceptResult:
    outcome: AcceptOutcome
    offer: Offer | None = None
    shipper_id: str | None = None
    # Drivers whose pending offers on the same load were expired
    expired_driver_ids: list[str] = field(default_factory=list)


DUPLICATE_OFFER = "DUPLICATE_OFFER"
DRIVER_NOT_VERIFIED = "DRIVER_NOT_VERIFIED"


@dataclass(frozen=True)
class OfferConflict:
    driver_id: str
    code: str
    existing_offer_id: str | None = None


@dataclass
class OfferBatch:
    load_id: str
    offers: list[Offer]
    conflicts: list[OfferConflict]
    expires_at: datetime
