"""Rate plans, seasonal rates, dynamic rules and restrictions (SQL-only).

Revision ID: 002_pricing_config
Revises: 001_inventory_schema
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_pricing_config"
down_revision = "001_inventory_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "002_pricing_config.sql"
    conn = op.get_bind()
    conn.exec_driver_sql(sql_path.read_text(encoding="utf-8"))


def downgrade() -> None:
    conn = op.get_bind()
    for table in (
        "rate_restrictions",
        "event_overrides",
        "dow_rules",
        "occupancy_rules",
        "seasonal_rates",
        "rate_plans",
    ):
        conn.exec_driver_sql(f"DROP TABLE IF EXISTS {table};")
