"""Seed inventory rows for every active room type.

    DATABASE_URL=... SEED_DAYS=365 python -m innkeep.operations.seed_inventory

Existing rows are never touched, so the script can run on a schedule to
keep a rolling window of nights open.
"""

import os
from datetime import date, timedelta

from innkeep.domain.inventory import InventoryLedger
from innkeep.infra.cache import TTLCache
from innkeep.infra.db import txn
from innkeep.infra.repositories.room_types_repository import fetch_active_room_types


def env(name: str, default: str | None = None) -> str:
    v = os.getenv(name, default)
    if v is None or v.strip() == "":
        raise RuntimeError(f"Missing env var: {name}")
    return v


def main() -> int:
    env("DATABASE_URL")
    days = int(env("SEED_DAYS", "365"))
    start = date.fromisoformat(env("SEED_START", date.today().isoformat()))
    end = start + timedelta(days=days - 1)
    total_rooms = os.getenv("SEED_TOTAL_ROOMS")

    with txn() as cur:
        room_types = fetch_active_room_types(cur)

    ledger = InventoryLedger(TTLCache())
    created = {
        rt.id: ledger.initialize(
            rt.id, start, end, int(total_rooms) if total_rooms else None
        )
        for rt in room_types
    }

    print(
        "seed ok:",
        {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "created": created,
        },
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
