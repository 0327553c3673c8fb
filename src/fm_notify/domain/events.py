"""Outbound notification events.

Decouples push delivery (external service) from load/offer state changes.
Events are fire-and-forget: the core never waits for delivery.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.fm_common.datetime_utils import utc_now
from src.fm_common.enums import NotificationType


@dataclass(frozen=True)
class NotificationEvent:
    type: NotificationType
    recipient_id: str
    load_id: str
    context: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "recipient_id": self.recipient_id,
            "load_id": self.load_id,
            "context": self.context,
            "created_at": self.created_at.isoformat(),
        }
