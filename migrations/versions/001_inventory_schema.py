"""Room types, rooms and the inventory ledger (SQL-only).

Revision ID: 001_inventory_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_inventory_schema"
down_revision = None
branch_labels = None
depends_on = None


def _read_sql(name: str) -> str:
    return (Path(__file__).resolve().parents[1] / "sql" / name).read_text(encoding="utf-8")


def upgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(_read_sql("001_inventory.sql"))


def downgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql("DROP TABLE IF EXISTS inventory_days;")
    conn.exec_driver_sql("DROP TABLE IF EXISTS rooms;")
    conn.exec_driver_sql("DROP TABLE IF EXISTS room_types;")
