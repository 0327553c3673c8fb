"""003: create load_offers table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE load_offers (
            id                  VARCHAR(64)     PRIMARY KEY,
            load_id             VARCHAR(64)     NOT NULL REFERENCES loads(id),
            driver_id           VARCHAR(64)     NOT NULL,
            offer_amount        NUMERIC(10, 2)  NOT NULL,
            driver_payout       NUMERIC(10, 2)  NOT NULL,
            match_score         SMALLINT,
            deadhead_miles      NUMERIC(8, 1),
            status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            counter_amount      NUMERIC(10, 2),
            expires_at          TIMESTAMPTZ     NOT NULL,
            responded_at        TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_load_offers_load_driver UNIQUE (load_id, driver_id),
            CONSTRAINT ck_load_offers_status CHECK (
                status IN ('pending', 'accepted', 'declined', 'countered', 'expired')
            ),
            CONSTRAINT ck_load_offers_score CHECK (
                match_score IS NULL OR (match_score >= 0 AND match_score <= 100)
            ),
            CONSTRAINT ck_load_offers_counter CHECK (
                counter_amount IS NULL OR counter_amount > 0
            )
        );
    """)
    # At most one accepted offer per load, enforced by the store as well
    op.execute("""
        CREATE UNIQUE INDEX uq_load_offers_one_accepted
            ON load_offers (load_id) WHERE status = 'accepted';
    """)
    op.execute("CREATE INDEX idx_load_offers_driver ON load_offers (driver_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_load_offers_pending_expiry
            ON load_offers (expires_at) WHERE status = 'pending';
    """)
    op.execute("""
        CREATE TRIGGER trg_load_offers_updated_at
            BEFORE UPDATE ON load_offers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE load_offers IS 'Time-limited offers of a load to drivers';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS load_offers CASCADE;")
