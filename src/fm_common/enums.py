"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class LoadStatus(str, Enum):
    POSTED = "posted"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    EN_ROUTE_PICKUP = "en_route_pickup"
    AT_PICKUP = "at_pickup"
    PICKED_UP = "picked_up"
    EN_ROUTE_DELIVERY = "en_route_delivery"
    AT_DELIVERY = "at_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COUNTERED = "countered"
    EXPIRED = "expired"


class OfferAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    COUNTER = "counter"


class LoadType(str, Enum):
    STANDARD = "standard"
    HOTSHOT = "hotshot"
    EMERGENCY = "emergency"


class BenchmarkSource(str, Enum):
    MANUAL = "manual"
    DEFAULT = "default"


class UserRole(str, Enum):
    """Role claim carried by the bearer token."""
    SHIPPER = "shipper"
    DRIVER = "driver"
    ADMIN = "admin"


class ActorRole(str, Enum):
    """Relationship of a caller to one specific load."""
    SHIPPER = "shipper"
    DRIVER = "driver"


class NotificationType(str, Enum):
    OFFER_CREATED = "offer_created"
    OFFER_ACCEPTED = "offer_accepted"
    OFFER_DECLINED = "offer_declined"
    OFFER_COUNTERED = "offer_countered"
    OFFER_EXPIRED = "offer_expired"
    LOAD_STATUS_CHANGED = "load_status_changed"
