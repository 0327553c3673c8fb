"""PricingApplicationService — quote + benchmark use cases.

Quotes are read-only: resolve the equipment group, look up the benchmark in
effect today and hand both to the pure engine. Benchmark writes are
admin-only and run inside one commit/rollback unit.
"""

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.datetime_utils import utc_today
from src.fm_common.errors import ForbiddenActorError, InvalidBenchmarkError
from src.fm_gateway.auth.context import CallerContext
from src.fm_pricing.application.schemas import (
    BenchmarkListResponse,
    BenchmarkResponse,
    BulkSetBenchmarksRequest,
    BulkSetBenchmarksResponse,
    QuoteRequest,
    QuoteResponse,
    SetBenchmarkRequest,
)
from src.fm_pricing.domain.config import (
    DEFAULT_BENCHMARK_CONFIG,
    DEFAULT_PRICING_CONFIG,
    BenchmarkConfig,
    PricingConfig,
    resolve_equipment_group,
)
from src.fm_pricing.domain.engine import calculate_quote
from src.fm_pricing.domain.models import MarketBenchmark, QuoteBreakdown
from src.fm_pricing.domain.repository import BenchmarkRepositoryProtocol
from src.fm_pricing.infrastructure.persistence import BenchmarkRepository

logger = logging.getLogger(__name__)


class PricingApplicationService:
    def __init__(
        self,
        repo: BenchmarkRepositoryProtocol | None = None,
        pricing_config: PricingConfig = DEFAULT_PRICING_CONFIG,
        benchmark_config: BenchmarkConfig = DEFAULT_BENCHMARK_CONFIG,
    ) -> None:
        self._repo: BenchmarkRepositoryProtocol = repo or BenchmarkRepository(
            benchmark_config
        )
        self._pricing_config = pricing_config
        self._benchmark_config = benchmark_config

    async def quote(
        self,
        db: AsyncSession,
        distance_miles,
        load_type: str,
        equipment: str | None,
        is_backhaul_saver: bool,
    ) -> tuple[QuoteBreakdown, MarketBenchmark]:
        """Domain-level quote, shared with load posting."""
        group = resolve_equipment_group(equipment, self._benchmark_config)
        benchmark = await self._repo.get_benchmark(db, group, utc_today())
        breakdown = calculate_quote(
            distance_miles,
            load_type=load_type,
            benchmark_rpm=benchmark.benchmark_rpm,
            is_backhaul_saver=is_backhaul_saver,
            equipment=equipment,
            config=self._pricing_config,
        )
        return breakdown, benchmark

    async def get_quote(self, db: AsyncSession, req: QuoteRequest) -> QuoteResponse:
        breakdown, benchmark = await self.quote(
            db,
            req.distance_miles,
            req.load_type.value,
            req.equipment,
            req.is_backhaul_saver,
        )
        return QuoteResponse.from_domain(breakdown, benchmark.source)

    async def get_benchmark(
        self, db: AsyncSession, equipment: str, on_date: date | None = None
    ) -> BenchmarkResponse:
        group = resolve_equipment_group(equipment, self._benchmark_config)
        benchmark = await self._repo.get_benchmark(db, group, on_date or utc_today())
        return BenchmarkResponse.from_domain(benchmark)

    async def list_benchmarks(
        self, db: AsyncSession, on_date: date | None = None
    ) -> BenchmarkListResponse:
        day = on_date or utc_today()
        benchmarks = await self._repo.list_benchmarks(db, day)
        return BenchmarkListResponse(
            date=day.isoformat(),
            benchmarks=[BenchmarkResponse.from_domain(b) for b in benchmarks],
        )

    async def set_benchmark(
        self, db: AsyncSession, req: SetBenchmarkRequest, caller: CallerContext
    ) -> BenchmarkResponse:
        if not caller.is_admin:
            raise ForbiddenActorError("Admin role required")
        if req.benchmark_rpm <= 0:
            raise InvalidBenchmarkError("benchmark_rpm must be positive")
        group = resolve_equipment_group(req.equipment_group, self._benchmark_config)
        try:
            benchmark = await self._repo.set_benchmark(
                db, group, req.benchmark_rpm, req.effective_date or utc_today(),
                req.notes, caller.user_id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Benchmark set: %s=%s on %s by %s",
            group, benchmark.benchmark_rpm, benchmark.date, caller.user_id,
        )
        return BenchmarkResponse.from_domain(benchmark)

    async def bulk_set_benchmarks(
        self, db: AsyncSession, req: BulkSetBenchmarksRequest, caller: CallerContext
    ) -> BulkSetBenchmarksResponse:
        if not caller.is_admin:
            raise ForbiddenActorError("Admin role required")
        day = req.effective_date or utc_today()
        written: list[MarketBenchmark] = []
        skipped = 0
        try:
            for entry in req.benchmarks:
                if not entry.equipment_group or not entry.equipment_group.strip():
                    skipped += 1
                    continue
                if entry.benchmark_rpm is None or entry.benchmark_rpm <= 0:
                    skipped += 1
                    continue
                group = resolve_equipment_group(
                    entry.equipment_group, self._benchmark_config
                )
                written.append(
                    await self._repo.set_benchmark(
                        db, group, entry.benchmark_rpm, day, entry.notes, caller.user_id
                    )
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Bulk benchmark update on %s: %d written, %d skipped",
            day, len(written), skipped,
        )
        return BulkSetBenchmarksResponse(
            date=day.isoformat(),
            updated=len(written),
            skipped=skipped,
            benchmarks=[BenchmarkResponse.from_domain(b) for b in written],
        )
