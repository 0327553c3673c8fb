# src/fm_matching/domain/repository.py
"""Driver availability source — read-only to the matching core."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_matching.domain.models import DriverAvailability, MatchingStats


class DriverAvailabilityProviderProtocol(Protocol):
    async def list_candidates(
        self, db: AsyncSession, available_at: datetime
    ) -> list[DriverAvailability]: ...

    async def get_for_drivers(
        self, db: AsyncSession, driver_ids: list[str]
    ) -> list[DriverAvailability]: ...


class MatchingStatsRepositoryProtocol(Protocol):
    async def get_stats(self, db: AsyncSession, now: datetime) -> MatchingStats: ...
