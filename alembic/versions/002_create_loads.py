"""002: create loads table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE loads (
            id                      VARCHAR(64)     PRIMARY KEY,
            shipper_id              VARCHAR(64)     NOT NULL,
            posted_by_org_id        VARCHAR(64),
            status                  VARCHAR(20)     NOT NULL DEFAULT 'posted',
            load_type               VARCHAR(20)     NOT NULL DEFAULT 'standard',
            description             TEXT,
            pickup_address          VARCHAR(500),
            pickup_city             VARCHAR(100),
            pickup_state            CHAR(2),
            pickup_lat              NUMERIC(9, 6),
            pickup_lng              NUMERIC(9, 6),
            delivery_address        VARCHAR(500),
            delivery_city           VARCHAR(100),
            delivery_state          CHAR(2),
            delivery_lat            NUMERIC(9, 6),
            delivery_lng            NUMERIC(9, 6),
            pickup_window_start     TIMESTAMPTZ,
            pickup_window_end       TIMESTAMPTZ,
            delivery_window_end     TIMESTAMPTZ,
            distance_miles          NUMERIC(8, 1)   NOT NULL,
            weight_lbs              INT,
            pieces                  INT             NOT NULL DEFAULT 1,
            is_fragile              BOOLEAN         NOT NULL DEFAULT FALSE,
            requires_liftgate       BOOLEAN         NOT NULL DEFAULT FALSE,
            requires_pallet_jack    BOOLEAN         NOT NULL DEFAULT FALSE,
            vehicle_type_required   VARCHAR(64),
            is_backhaul_saver       BOOLEAN         NOT NULL DEFAULT FALSE,
            price                   NUMERIC(10, 2)  NOT NULL,
            driver_payout           NUMERIC(10, 2)  NOT NULL,
            platform_fee            NUMERIC(10, 2)  NOT NULL,
            driver_id               VARCHAR(64),
            allow_offers            BOOLEAN         NOT NULL DEFAULT TRUE,
            allow_book_now          BOOLEAN         NOT NULL DEFAULT FALSE,
            min_offer               NUMERIC(10, 2),
            verified_only           BOOLEAN         NOT NULL DEFAULT FALSE,
            posted_at               TIMESTAMPTZ,
            assigned_at             TIMESTAMPTZ,
            picked_up_at            TIMESTAMPTZ,
            delivered_at            TIMESTAMPTZ,
            completed_at            TIMESTAMPTZ,
            cancelled_at            TIMESTAMPTZ,
            cancelled_by            VARCHAR(64),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_loads_status CHECK (
                status IN ('posted', 'assigned', 'accepted', 'en_route_pickup',
                           'at_pickup', 'picked_up', 'en_route_delivery',
                           'at_delivery', 'delivered', 'completed', 'cancelled')
            ),
            CONSTRAINT ck_loads_load_type CHECK (
                load_type IN ('standard', 'hotshot', 'emergency')
            ),
            CONSTRAINT ck_loads_distance_gt_0   CHECK (distance_miles > 0),
            CONSTRAINT ck_loads_money_gte_0     CHECK (
                price >= 0 AND driver_payout >= 0 AND platform_fee >= 0
            ),
            CONSTRAINT ck_loads_posted_no_driver CHECK (
                status <> 'posted' OR driver_id IS NULL
            ),
            CONSTRAINT ck_loads_assigned_has_driver CHECK (
                status IN ('posted', 'cancelled') OR driver_id IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_loads_status ON loads (status);")
    op.execute("CREATE INDEX idx_loads_shipper ON loads (shipper_id, created_at DESC);")
    op.execute("CREATE INDEX idx_loads_driver ON loads (driver_id) WHERE driver_id IS NOT NULL;")
    op.execute("""
        CREATE TRIGGER trg_loads_updated_at
            BEFORE UPDATE ON loads
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE loads IS 'Shipments with lifecycle status and price breakdown';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS loads CASCADE;")
