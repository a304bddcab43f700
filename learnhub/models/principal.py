from __future__ import annotations

from dataclasses import dataclass

ROLES = ("student", "instructor", "admin")


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from a validated JWT.

    Passed explicitly into every core operation that depends on who is
    asking.  The identity directory owns users; this service only sees
    the subject id and the role claims of the current token.
    """

    user_id: str
    roles: frozenset[str]

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def is_platform_admin(self) -> bool:
        return "admin" in self.roles
