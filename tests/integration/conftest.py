"""Integration-test fixtures.

Requires a migrated database (alembic upgrade head) at DATABASE_URL; the
whole directory is skipped when it is unreachable. All tests share one
event loop so the module-level engine pool stays valid.
"""

from datetime import UTC, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.fm_common.database import check_database, engine
from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    try:
        await check_database()
    except (OSError, SQLAlchemyError) as exc:
        pytest.skip(f"database unavailable: {exc}")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def seed_drivers(client: AsyncClient):
    """Two verified drivers sitting at the Dallas pickup."""
    suffix = datetime.now(UTC).strftime("%H%M%S%f")
    drivers = [f"it-driver-a-{suffix}", f"it-driver-b-{suffix}"]
    async with engine.begin() as conn:
        for driver_id in drivers:
            await conn.execute(
                text("""
                    INSERT INTO driver_availability
                        (id, driver_id, is_active, org_verified, rating,
                         current_lat, current_lng, equipment_type, service_types,
                         available_from)
                    VALUES (:id, :driver_id, TRUE, TRUE, 4.8, 32.7767, -96.7970,
                            'Box Truck 26ft', ARRAY['standard'], NOW() - INTERVAL '1 hour')
                """),
                {"id": f"avail-{driver_id}", "driver_id": driver_id},
            )
    yield drivers
    async with engine.begin() as conn:
        await conn.execute(
            text("DELETE FROM driver_availability WHERE driver_id = ANY(:ids)"),
            {"ids": drivers},
        )
