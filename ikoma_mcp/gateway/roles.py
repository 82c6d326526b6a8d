"""Role authorization.

Roles form a single total order ``observer < operator < builder < admin``.
A caller may invoke any capability whose required role is at or below its own.
There are no per-capability overrides and no group memberships.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .errors import InvalidRoleError
from .schemas.domain import Role

ROLE_LEVELS: Mapping[Role, int] = MappingProxyType(
    {
        Role.observer: 0,
        Role.operator: 1,
        Role.builder: 2,
        Role.admin: 3,
    }
)


def parse_role(value: object) -> Role:
    """
    Convert a claimed role (header value, claim, config entry) into a ``Role``.

    Raises:
        InvalidRoleError: For anything other than the four role strings.
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            return Role(value.strip())
        except ValueError:
            pass
    raise InvalidRoleError(
        f"Invalid role: {value!r}",
        hint="Valid role required (observer, operator, builder, admin)",
    )


class RoleAuthorizer:
    """Decide whether a caller role dominates a required role."""

    @staticmethod
    def level(role: Role) -> int:
        """Return the fixed, strictly increasing level of ``role``."""
        return ROLE_LEVELS[parse_role(role)]

    def permits(self, caller: Role, required: Role) -> bool:
        """True when ``level(caller) >= level(required)``."""
        return self.level(caller) >= self.level(required)
