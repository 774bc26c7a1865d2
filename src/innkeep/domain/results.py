"""Typed failure values for expected business outcomes.

Operations return either their success value or a ``Failure`` carrying a
reason enum and a small meta dict (dates, ids, limits) that callers can turn
into actionable messages. Exceptions are kept for programming and
infrastructure errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

R = TypeVar("R", bound=Enum)


@dataclass(frozen=True)
class Failure(Generic[R]):
    reason: R
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def reason_code(self) -> str:
        return str(self.reason.value)

    def to_dict(self) -> dict[str, Any]:
        meta = {
            k: (v.isoformat() if hasattr(v, "isoformat") else v)
            for k, v in self.meta.items()
        }
        return {"reason": self.reason_code, "meta": meta}


def is_failure(result: object) -> bool:
    return isinstance(result, Failure)


def succeeded(result: object) -> bool:
    """Commit predicate for with_transaction()."""
    return not isinstance(result, Failure)
