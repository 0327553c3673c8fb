"""BenchmarkRepository — concrete implementation of BenchmarkRepositoryProtocol.

All queries use raw text() SQL (no ORM). market_benchmarks is append-only by
date; a second write for the same (date, equipment_group) replaces the rate.
Reads never miss: the static default table backs every equipment group.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fm_common.enums import BenchmarkSource
from src.fm_common.money import to_decimal
from src.fm_pricing.domain.config import DEFAULT_BENCHMARK_CONFIG, BenchmarkConfig
from src.fm_pricing.domain.models import MarketBenchmark

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_LATEST_SQL = text("""
    SELECT equipment_group, benchmark_rpm, date, source, confidence, notes
    FROM market_benchmarks
    WHERE equipment_group = :equipment_group AND date <= :on_date
    ORDER BY date DESC
    LIMIT 1
""")

_LIST_LATEST_SQL = text("""
    SELECT DISTINCT ON (equipment_group)
        equipment_group, benchmark_rpm, date, source, confidence, notes
    FROM market_benchmarks
    WHERE date <= :on_date
    ORDER BY equipment_group, date DESC
""")

_UPSERT_SQL = text("""
    INSERT INTO market_benchmarks
        (date, equipment_group, benchmark_rpm, source, confidence, notes, created_by)
    VALUES (:on_date, :equipment_group, :benchmark_rpm, 'manual', 1.0, :notes, :created_by)
    ON CONFLICT (date, equipment_group)
    DO UPDATE SET
        benchmark_rpm = EXCLUDED.benchmark_rpm,
        notes = EXCLUDED.notes,
        updated_at = NOW()
    RETURNING equipment_group, benchmark_rpm, date, source, confidence, notes
""")

# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_benchmark(row: Any) -> MarketBenchmark:
    return MarketBenchmark(
        equipment_group=row.equipment_group,
        benchmark_rpm=to_decimal(row.benchmark_rpm),
        date=row.date,
        source=row.source,
        confidence=to_decimal(row.confidence if row.confidence is not None else 1),
        notes=row.notes,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BenchmarkRepository:
    def __init__(self, config: BenchmarkConfig = DEFAULT_BENCHMARK_CONFIG) -> None:
        self._config = config

    def default_benchmark(self, equipment_group: str, on_date: date) -> MarketBenchmark:
        rpm = self._config.default_benchmarks.get(equipment_group, self._config.fallback_rpm)
        return MarketBenchmark(
            equipment_group=equipment_group,
            benchmark_rpm=rpm,
            date=on_date,
            source=BenchmarkSource.DEFAULT.value,
            confidence=self._config.default_confidence,
        )

    async def get_benchmark(
        self, db: AsyncSession, equipment_group: str, on_date: date
    ) -> MarketBenchmark:
        result = await db.execute(
            _GET_LATEST_SQL,
            {"equipment_group": equipment_group, "on_date": on_date},
        )
        row = result.fetchone()
        if row is None:
            return self.default_benchmark(equipment_group, on_date)
        return _row_to_benchmark(row)

    async def list_benchmarks(
        self, db: AsyncSession, on_date: date
    ) -> list[MarketBenchmark]:
        # Start with defaults, override with stored values
        merged: dict[str, MarketBenchmark] = {
            group: self.default_benchmark(group, on_date)
            for group in self._config.default_benchmarks
        }
        result = await db.execute(_LIST_LATEST_SQL, {"on_date": on_date})
        for row in result.fetchall():
            merged[row.equipment_group] = _row_to_benchmark(row)
        return sorted(merged.values(), key=lambda b: b.equipment_group)

    async def set_benchmark(
        self,
        db: AsyncSession,
        equipment_group: str,
        benchmark_rpm: Decimal,
        on_date: date,
        notes: str | None,
        created_by: str | None,
    ) -> MarketBenchmark:
        result = await db.execute(
            _UPSERT_SQL,
            {
                "on_date": on_date,
                "equipment_group": equipment_group,
                "benchmark_rpm": benchmark_rpm,
                "notes": notes,
                "created_by": created_by,
            },
        )
        return _row_to_benchmark(result.fetchone())
