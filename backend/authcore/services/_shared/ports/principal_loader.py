from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Identity snapshot embedded into access-token claims.

    :ivar user_id: Subject identifier (string form).
    :ivar email: Login email.
    :ivar display_name: Human-readable name.
    :ivar roles: Role names granted at load time.
    """

    user_id: str
    email: str
    display_name: str
    roles: frozenset[str] = field(default_factory=frozenset)


class PrincipalLoader(Protocol):
    """Resolve a user id to its *current* principal (roles may change between rotations)."""

    def load(self, user_id: str) -> Principal | None: ...


class InMemoryPrincipalLoader(PrincipalLoader):
    """Dictionary-backed loader for unit tests."""

    def __init__(self, principals: Iterable[Principal] = ()) -> None:
        self._by_id = {p.user_id: p for p in principals}

    def put(self, principal: Principal) -> None:
        self._by_id[principal.user_id] = principal

    def remove(self, user_id: str) -> None:
        self._by_id.pop(user_id, None)

    def load(self, user_id: str) -> Principal | None:
        return self._by_id.get(user_id)
