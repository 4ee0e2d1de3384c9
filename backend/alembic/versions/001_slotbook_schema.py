# backend/alembic/versions/001_slotbook_schema.py
"""Slotbook schema - appointments, availability and read models

Revision ID: 001_slotbook_schema
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates the authoritative appointment and per-day availability tables
and the three read-model tables rebuilt by the projector.

On PostgreSQL the appointments table additionally gets a generated
``appointment_span`` tsrange column and the exclusion constraint
``appointments_no_overlap_per_staff`` so that two non-cancelled
appointments of one staff member can never overlap, whatever the
application checked beforehand.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_slotbook_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_APPOINTMENT_PREDICATE = "status <> 'CANCELLED'"


def _create_extension_prefer_extensions_schema(extension_name: str) -> None:
    """Create extension using extensions schema when available."""

    bind = op.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return

    op.execute(
        f"""
        DO $$
        DECLARE
            extensions_schema_exists BOOLEAN;
            extension_installed BOOLEAN;
        BEGIN
            SELECT EXISTS (
                SELECT 1 FROM pg_namespace WHERE nspname = 'extensions'
            ) INTO extensions_schema_exists;

            SELECT EXISTS (
                SELECT 1 FROM pg_extension WHERE extname = '{extension_name}'
            ) INTO extension_installed;

            IF NOT extension_installed THEN
                IF extensions_schema_exists THEN
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name} WITH SCHEMA extensions';
                ELSE
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name}';
                END IF;
            END IF;
        END
        $$;
        """
    )


def upgrade() -> None:
    """Create appointment, availability and read-model tables."""
    print("Creating slotbook tables...")

    bind = op.get_bind()
    dialect_name = bind.dialect.name if bind is not None else "postgresql"
    is_postgres = dialect_name == "postgresql"

    op.create_table(
        "appointments",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("client_id", sa.String(26), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="SCHEDULED"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('SCHEDULED', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="ck_appointments_status",
        ),
    )
    op.create_index("ix_appointments_id", "appointments", ["id"])
    op.create_index("ix_appointments_business_id", "appointments", ["business_id"])
    op.create_index("ix_appointments_client_id", "appointments", ["client_id"])
    op.create_index("ix_appointments_appointment_date", "appointments", ["appointment_date"])
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index("ix_appointments_staff_date", "appointments", ["staff_id", "appointment_date"])
    op.create_index(
        "uq_appointments_staff_slot_active",
        "appointments",
        ["staff_id", "appointment_date", "start_time"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_APPOINTMENT_PREDICATE),
        sqlite_where=sa.text(ACTIVE_APPOINTMENT_PREDICATE),
    )

    if is_postgres:
        op.create_check_constraint(
            "check_appointment_time_order",
            "appointments",
            "CASE "
            "WHEN end_time = '00:00:00' AND start_time <> '00:00:00' THEN TRUE "
            "ELSE start_time < end_time "
            "END",
        )
        _create_extension_prefer_extensions_schema("btree_gist")
        op.execute(
            """
            ALTER TABLE appointments
              ADD COLUMN IF NOT EXISTS appointment_span tsrange
              GENERATED ALWAYS AS (
                tsrange(
                  (appointment_date::timestamp + start_time),
                  CASE
                    WHEN end_time = '00:00:00'
                      THEN (appointment_date::timestamp + interval '1 day')
                    ELSE (appointment_date::timestamp + end_time)
                  END,
                  '[)'
                )
              ) STORED
            """
        )
        op.execute(
            f"""
            ALTER TABLE appointments
              ADD CONSTRAINT appointments_no_overlap_per_staff
              EXCLUDE USING gist (
                staff_id WITH =,
                appointment_span WITH &&
              )
              WHERE ({ACTIVE_APPOINTMENT_PREDICATE})
            """
        )

    op.create_table(
        "staff_daily_availability",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("availability_date", sa.Date(), nullable=False),
        sa.Column("time_slots", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("staff_id", "availability_date", name="uq_staff_availability_day"),
    )
    op.create_index(
        "ix_staff_daily_availability_business_id", "staff_daily_availability", ["business_id"]
    )
    op.create_index(
        "ix_staff_availability_business_date",
        "staff_daily_availability",
        ["business_id", "availability_date"],
    )

    # Read models
    op.create_table(
        "available_booking_slots",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=False),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("service_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("service_name", sa.String(255), nullable=False),
        sa.Column("staff_name", sa.String(255), nullable=False),
        sa.Column("service_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_booking_slots_business_service_date",
        "available_booking_slots",
        ["business_id", "service_id", "slot_date"],
    )
    op.create_index(
        "ix_booking_slots_staff_date", "available_booking_slots", ["staff_id", "slot_date"]
    )

    op.create_table(
        "staff_daily_schedules",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=False),
        sa.Column("schedule_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("appointment_id", sa.String(26), nullable=True),
        sa.Column("client_id", sa.String(26), nullable=True),
        sa.Column("client_name", sa.String(255), nullable=True),
        sa.Column("service_id", sa.String(26), nullable=True),
        sa.Column("service_name", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_staff_schedules_staff_date", "staff_daily_schedules", ["staff_id", "schedule_date"]
    )

    op.create_table(
        "client_appointment_views",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("client_id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("service_name", sa.String(255), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=False),
        sa.Column("staff_name", sa.String(255), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_client_views_client_date",
        "client_appointment_views",
        ["client_id", "appointment_date"],
    )

    print("Slotbook tables created successfully!")


def downgrade() -> None:
    """Drop slotbook tables."""
    print("Dropping slotbook tables...")

    bind = op.get_bind()
    dialect_name = bind.dialect.name if bind is not None else "postgresql"
    is_postgres = dialect_name == "postgresql"

    op.drop_index("ix_client_views_client_date", table_name="client_appointment_views")
    op.drop_table("client_appointment_views")

    op.drop_index("ix_staff_schedules_staff_date", table_name="staff_daily_schedules")
    op.drop_table("staff_daily_schedules")

    op.drop_index("ix_booking_slots_staff_date", table_name="available_booking_slots")
    op.drop_index("ix_booking_slots_business_service_date", table_name="available_booking_slots")
    op.drop_table("available_booking_slots")

    op.drop_index("ix_staff_availability_business_date", table_name="staff_daily_availability")
    op.drop_index("ix_staff_daily_availability_business_id", table_name="staff_daily_availability")
    op.drop_table("staff_daily_availability")

    if is_postgres:
        op.execute(
            "ALTER TABLE appointments DROP CONSTRAINT IF EXISTS appointments_no_overlap_per_staff"
        )
        op.execute("ALTER TABLE appointments DROP COLUMN IF EXISTS appointment_span")

    op.drop_index("uq_appointments_staff_slot_active", table_name="appointments")
    op.drop_index("ix_appointments_staff_date", table_name="appointments")
    op.drop_index("ix_appointments_status", table_name="appointments")
    op.drop_index("ix_appointments_appointment_date", table_name="appointments")
    op.drop_index("ix_appointments_client_id", table_name="appointments")
    op.drop_index("ix_appointments_business_id", table_name="appointments")
    op.drop_index("ix_appointments_id", table_name="appointments")
    op.drop_table("appointments")

    print("Slotbook tables dropped successfully!")
