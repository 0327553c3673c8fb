from typing import Protocol

from src.fm_notify.domain.events import NotificationEvent


class NotificationPublisherProtocol(Protocol):
    async def publish(self, event: NotificationEvent) -> None: ...
