"""004: create market_benchmarks table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE market_benchmarks (
            id                  BIGSERIAL       PRIMARY KEY,
            date                DATE            NOT NULL,
            equipment_group     VARCHAR(64)     NOT NULL,
            benchmark_rpm       NUMERIC(6, 2)   NOT NULL,
            source              VARCHAR(20)     NOT NULL DEFAULT 'manual',
            confidence          NUMERIC(3, 2)   NOT NULL DEFAULT 1.0,
            notes               TEXT,
            created_by          VARCHAR(64),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_market_benchmarks_date_group UNIQUE (date, equipment_group),
            CONSTRAINT ck_market_benchmarks_rpm_gt_0 CHECK (benchmark_rpm > 0),
            CONSTRAINT ck_market_benchmarks_source CHECK (source IN ('manual', 'default')),
            CONSTRAINT ck_market_benchmarks_confidence CHECK (
                confidence >= 0 AND confidence <= 1
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_market_benchmarks_group_date
            ON market_benchmarks (equipment_group, date DESC);
    """)
    op.execute("""
        CREATE TRIGGER trg_market_benchmarks_updated_at
            BEFORE UPDATE ON market_benchmarks
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS market_benchmarks CASCADE;")
