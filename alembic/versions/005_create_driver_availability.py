"""005: create driver_availability table

Written by the driver-facing service; read-only to this core.

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE driver_availability (
            id                  VARCHAR(64)     PRIMARY KEY,
            driver_id           VARCHAR(64)     NOT NULL,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            org_verified        BOOLEAN         NOT NULL DEFAULT FALSE,
            rating              NUMERIC(3, 2),
            current_lat         NUMERIC(9, 6),
            current_lng         NUMERIC(9, 6),
            destination_lat     NUMERIC(9, 6),
            destination_lng     NUMERIC(9, 6),
            destination_city    VARCHAR(100),
            destination_state   CHAR(2),
            current_load_id     VARCHAR(64),
            equipment_type      VARCHAR(64),
            service_types       TEXT[]          NOT NULL DEFAULT ARRAY['standard'],
            max_deadhead_miles  NUMERIC(6, 1),
            min_payout          NUMERIC(10, 2),
            min_rate_per_mile   NUMERIC(6, 2),
            available_from      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            available_until     TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_driver_availability_rating CHECK (
                rating IS NULL OR (rating >= 0 AND rating <= 5)
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_driver_availability_active
            ON driver_availability (available_from) WHERE is_active = TRUE;
    """)
    op.execute("CREATE INDEX idx_driver_availability_driver ON driver_availability (driver_id);")
    op.execute("""
        CREATE TRIGGER trg_driver_availability_updated_at
            BEFORE UPDATE ON driver_availability
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS driver_availability CASCADE;")
