"""Initial schema: drivers, dispatch records, fraud alerts and the bag ledger.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column(
            "vehicle_type",
            sa.Enum("car", "motorcycle", name="vehicletype"),
            nullable=True,
        ),
        sa.Column(
            "status",
            sa.Enum("inactive", "waiting", "dispatched", name="driverstatus"),
            nullable=False,
            server_default="inactive",
        ),
        sa.Column("device_id", sa.String(128), nullable=True),
        sa.Column("bags_balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("bags_balance >= 0", name="ck_drivers_bags_non_negative"),
    )
    op.create_index("idx_drivers_name", "drivers", ["name"])
    op.create_index("idx_drivers_status", "drivers", ["status"])
    op.create_index("idx_drivers_device", "drivers", ["device_id"])

    # ── dispatch_records ──────────────────────────────────────────────
    op.create_table(
        "dispatch_records",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "driver_id",
            sa.String(64),
            sa.ForeignKey("drivers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("driver_name", sa.String(120), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_latitude", sa.Float, nullable=True),
        sa.Column("start_longitude", sa.Float, nullable=True),
        sa.Column("end_latitude", sa.Float, nullable=True),
        sa.Column("end_longitude", sa.Float, nullable=True),
        sa.Column("selfie_url", sa.Text, nullable=True),
        sa.Column("device_id", sa.String(128), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "queued",
                "in_progress",
                "dispatched",
                "completed",
                "cancelled",
                name="dispatchstatus",
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("bags_taken", sa.Integer, nullable=True),
        sa.Column("destination_area", sa.String(120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "bags_taken IS NULL OR bags_taken >= 0",
            name="ck_dispatch_bags_taken_non_negative",
        ),
    )
    op.create_index("idx_dispatch_status", "dispatch_records", ["status"])
    op.create_index("idx_dispatch_driver", "dispatch_records", ["driver_id"])
    op.create_index("idx_dispatch_device", "dispatch_records", ["device_id"])
    op.create_index("idx_dispatch_start_time", "dispatch_records", ["start_time"])

    # ── fraud_alerts ──────────────────────────────────────────────────
    op.create_table(
        "fraud_alerts",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "kind",
            sa.Enum(
                "duplicate_name",
                "duplicate_device_binding",
                "name_mismatch_on_device",
                name="fraudalertkind",
            ),
            nullable=False,
        ),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("driver_name", sa.String(120), nullable=False),
        sa.Column("device_id", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_fraud_alerts_created", "fraud_alerts", ["created_at"])

    # ── bag_movements ─────────────────────────────────────────────────
    op.create_table(
        "bag_movements",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "driver_id",
            sa.String(64),
            sa.ForeignKey("drivers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("delta", sa.Integer, nullable=False),
        sa.Column(
            "reason",
            sa.Enum("dispatch", "return", name="bagmovementreason"),
            nullable=False,
        ),
        sa.Column("balance_after", sa.Integer, nullable=False),
        sa.Column(
            "dispatch_record_id",
            sa.String(64),
            sa.ForeignKey("dispatch_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_bag_movements_driver", "bag_movements", ["driver_id"])


def downgrade() -> None:
    op.drop_table("bag_movements")
    op.drop_table("fraud_alerts")
    op.drop_table("dispatch_records")
    op.drop_table("drivers")
    op.execute("DROP TYPE IF EXISTS bagmovementreason")
    op.execute("DROP TYPE IF EXISTS fraudalertkind")
    op.execute("DROP TYPE IF EXISTS dispatchstatus")
    op.execute("DROP TYPE IF EXISTS driverstatus")
    op.execute("DROP TYPE IF EXISTS vehicletype")
