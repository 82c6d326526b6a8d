"""Capability registry.

The registry maps a ``CapabilityName`` to its single implementation. It is
built once from a complete set of capabilities and cannot be changed
afterwards; the dispatcher and transports only read from it.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..roles import RoleAuthorizer
from ..schemas.domain import Role
from .base import Capability, CapabilityName


class CapabilityRegistry:
    """
    Immutable mapping of capability names to implementations.

    Args:
        capabilities: One implementation per ``CapabilityName`` member.

    Raises:
        ValueError: If a name is implemented twice or a member has no
            implementation.
    """

    def __init__(self, capabilities: Iterable[Capability]) -> None:
        caps: Dict[CapabilityName, Capability] = {}
        for cap in capabilities:
            if cap.name in caps:
                raise ValueError(f"Duplicate capability implementation: {cap.name.value}")
            caps[cap.name] = cap
        missing = [n.value for n in CapabilityName if n not in caps]
        if missing:
            raise ValueError(f"Capabilities without implementation: {', '.join(missing)}")
        self._caps: Mapping[CapabilityName, Capability] = MappingProxyType(caps)

    def get(self, name: CapabilityName) -> Capability:
        """
        Retrieve a capability by name.

        Raises:
            KeyError: If ``name`` is not a registered capability.
        """
        return self._caps[name]

    def has(self, name: CapabilityName) -> bool:
        return name in self._caps

    def lookup(self, name: str) -> Optional[Capability]:
        """Resolve a wire-level name (e.g. ``"apps.list"``); ``None`` when unknown."""
        try:
            return self._caps[CapabilityName(name)]
        except ValueError:
            return None

    def names(self) -> List[str]:
        return [n.value for n in self._caps]

    def all(self) -> List[Capability]:
        return list(self._caps.values())

    def list_for(self, role: Role, authorizer: Optional[RoleAuthorizer] = None) -> List[Capability]:
        """Capabilities a caller holding ``role`` may invoke."""
        authorizer = authorizer or RoleAuthorizer()
        return [cap for cap in self._caps.values() if authorizer.permits(role, cap.required_role)]

    @staticmethod
    def describe(cap: Capability) -> Dict[str, Any]:
        """Public description: name, description, required role and JSON input schema."""
        return {
            "name": cap.name.value,
            "description": cap.description,
            "requiredRole": cap.required_role.value,
            "inputSchema": cap.input_model.model_json_schema(by_alias=True),
        }
