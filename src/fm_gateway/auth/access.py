"""Access-control collaborator: which role does a caller play on a load?

The core only branches on the returned ActorRole; None means the caller is
neither the owning shipper (user or posting org) nor the assigned driver.
"""

from typing import Protocol

from src.fm_common.enums import ActorRole
from src.fm_gateway.auth.context import CallerContext
from src.fm_load.domain.models import Load


class AccessControlProtocol(Protocol):
    def is_authorized_actor(
        self, caller: CallerContext, load: Load
    ) -> ActorRole | None: ...


class LoadAccessControl:
    """Ownership-based implementation used in production."""

    def is_authorized_actor(
        self, caller: CallerContext, load: Load
    ) -> ActorRole | None:
        if caller.user_id == load.shipper_id:
            return ActorRole.SHIPPER
        if caller.org_id is not None and caller.org_id == load.posted_by_org_id:
            return ActorRole.SHIPPER
        if load.driver_id is not None and caller.user_id == load.driver_id:
            return ActorRole.DRIVER
        return None
