"""MatchingApplicationService — load lookup + pool fetch + pure ranking."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.datetime_utils import utc_now
from src.fm_common.enums import ActorRole
from src.fm_common.errors import ForbiddenActorError, LoadNotFoundError
from src.fm_gateway.auth.access import AccessControlProtocol, LoadAccessControl
from src.fm_gateway.auth.context import CallerContext
from src.fm_load.domain.models import Load
from src.fm_load.domain.repository import LoadRepositoryProtocol
from src.fm_load.infrastructure.persistence import LoadRepository
from src.fm_matching.application.schemas import MatchResponse, MatchingStatsResponse
from src.fm_matching.domain.config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from src.fm_matching.domain.models import DriverAvailability, MatchCandidate, MatchOptions
from src.fm_matching.domain.ranker import find_matches
from src.fm_matching.domain.repository import (
    DriverAvailabilityProviderProtocol,
    MatchingStatsRepositoryProtocol,
)
from src.fm_matching.infrastructure.persistence import (
    MatchingStatsRepository,
    SqlDriverAvailabilityProvider,
)


class MatchingApplicationService:
    def __init__(
        self,
        load_repo: LoadRepositoryProtocol | None = None,
        provider: DriverAvailabilityProviderProtocol | None = None,
        access: AccessControlProtocol | None = None,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
        stats_repo: MatchingStatsRepositoryProtocol | None = None,
    ) -> None:
        self._load_repo: LoadRepositoryProtocol = load_repo or LoadRepository()
        self._provider: DriverAvailabilityProviderProtocol = (
            provider or SqlDriverAvailabilityProvider()
        )
        self._access: AccessControlProtocol = access or LoadAccessControl()
        self._config = config
        self._stats_repo: MatchingStatsRepositoryProtocol = (
            stats_repo or MatchingStatsRepository()
        )

    async def find_matches(
        self,
        db: AsyncSession,
        load_id: str,
        options: MatchOptions,
        caller: CallerContext,
    ) -> MatchResponse:
        load = await self._load_repo.get_by_id(db, load_id)
        if load is None:
            raise LoadNotFoundError(load_id)
        if (
            not caller.is_admin
            and self._access.is_authorized_actor(caller, load) is not ActorRole.SHIPPER
        ):
            raise ForbiddenActorError("Only the load's shipper can view matches")

        now = utc_now()
        pool = await self._provider.list_candidates(db, load.pickup_window_start or now)
        ranked = find_matches(load, pool, options, self._config, now=now)
        return MatchResponse.from_domain(ranked)

    async def score_drivers(
        self, db: AsyncSession, load: Load, driver_ids: list[str]
    ) -> tuple[dict[str, MatchCandidate], dict[str, DriverAvailability]]:
        """Score specific drivers for offer creation: no soft ceilings apply.

        Returns (candidates by driver id, availability by driver id); drivers
        that fail a hard filter have no candidate entry.
        """
        pool = await self._provider.get_for_drivers(db, driver_ids)
        options = MatchOptions(
            max_results=self._config.max_results_cap,
            include_wider_matches=True,
            min_score=0,
        )
        ranked = find_matches(load, pool, options, self._config)
        by_driver = {c.driver_id: c for c in ranked.matches}
        return by_driver, {a.driver_id: a for a in pool}

    async def get_stats(self, db: AsyncSession, caller: CallerContext) -> MatchingStatsResponse:
        if not caller.is_admin:
            raise ForbiddenActorError("Admin role required")
        stats = await self._stats_repo.get_stats(db, utc_now())
        return MatchingStatsResponse.from_domain(stats)
