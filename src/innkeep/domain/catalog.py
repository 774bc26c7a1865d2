"""Room type catalog - cached, read-only view of room types."""

from __future__ import annotations

from typing import Callable

from innkeep.domain.models import RoomType
from innkeep.infra.cache import TTLCache, config_tag


class RoomTypeCatalog:
    def __init__(
        self,
        cache: TTLCache,
        *,
        load_room_type: Callable[[int], RoomType | None],
        load_active: Callable[[], list[RoomType]],
        ttl: float = 60,
    ) -> None:
        self._cache = cache
        self._load_room_type = load_room_type
        self._load_active = load_active
        self._ttl = ttl

    def get(self, room_type_id: int) -> RoomType | None:
        return self._cache.get_or_set(
            f"room_type:{room_type_id}",
            lambda: self._load_room_type(room_type_id),
            self._ttl,
            tags=(config_tag("room_types"),),
        )

    def active(self) -> list[RoomType]:
        return self._cache.get_or_set(
            "room_types:active",
            self._load_active,
            self._ttl,
            tags=(config_tag("room_types"),),
        )
