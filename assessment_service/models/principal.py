from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Principal:
    """The learner a request acts for.

    user_id is the bearer token's subject; it scopes every submission
    read and write, and keys the live session registry.
    """

    user_id: str
    roles: frozenset[str] = frozenset()

    @staticmethod
    def from_claims(claims: Mapping[str, Any]) -> Principal:
        return Principal(
            user_id=str(claims["sub"]),
            roles=frozenset(claims.get("roles", ())),
        )
