# src/fm_pricing/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_pricing.domain.models import MarketBenchmark


class BenchmarkRepositoryProtocol(Protocol):
    async def get_benchmark(
        self, db: AsyncSession, equipment_group: str, on_date: date
    ) -> MarketBenchmark: ...

    async def list_benchmarks(
        self, db: AsyncSession, on_date: date
    ) -> list[MarketBenchmark]: ...

    async def set_benchmark(
        self,
        db: AsyncSession,
        equipment_group: str,
        benchmark_rpm: Decimal,
        on_date: date,
        notes: str | None,
        created_by: str | None,
    ) -> MarketBenchmark: ...
