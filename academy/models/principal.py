from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity, resolved outside this service.

    Built from a verified bearer token by the API layer (or directly by
    tests) and passed explicitly into every operation.  There is no ambient
    "current user".

        user_id: subject of the token
        roles:   platform roles (learner, instructor, admin)
    """

    user_id: UUID
    roles: frozenset[str] = frozenset()

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def is_platform_admin(self) -> bool:
        return "admin" in self.roles
