# src/fm_load/domain/repository.py
"""Repository Protocol for loads.

All status writes are conditional on the status the caller read; a False /
None return means another writer got there first.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_load.domain.models import Load


class LoadRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, load_id: str) -> Load | None: ...

    async def insert(self, db: AsyncSession, load: Load) -> Load: ...

    async def update_status(
        self,
        db: AsyncSession,
        load_id: str,
        expected: str,
        new_status: str,
        now: datetime,
    ) -> Load | None: ...

    async def cancel(
        self,
        db: AsyncSession,
        load_id: str,
        expected: str,
        cancelled_by: str,
        now: datetime,
    ) -> Load | None: ...

    async def assign_driver(
        self, db: AsyncSession, load_id: str, driver_id: str, now: datetime
    ) -> Load | None: ...

    async def expire_pending_offers(
        self, db: AsyncSession, load_id: str, now: datetime
    ) -> list[str]: ...
