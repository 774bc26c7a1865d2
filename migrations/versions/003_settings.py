"""Settings table with pricing defaults.

Revision ID: 003_settings
Revises: 002_pricing_config
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "003_settings"
down_revision = "002_pricing_config"
branch_labels = None
depends_on = None


def upgrade() -> None:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "003_settings.sql"
    conn = op.get_bind()
    conn.exec_driver_sql(sql_path.read_text(encoding="utf-8"))


def downgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql("DROP TABLE IF EXISTS settings;")
