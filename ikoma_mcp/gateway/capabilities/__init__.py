"""Capabilities: the named, role-gated operations the gateway exposes.

- ``base``: ``CapabilityName``, the ``Capability`` protocol and ``CapabilityResult``.
- ``registry``: immutable name -> implementation table.
- ``builtin``: the fixed table of all capabilities.
"""

from .base import Capability, CapabilityName, CapabilityResult
from .builtin import build_default_registry, default_capabilities
from .registry import CapabilityRegistry

__all__ = [
    "Capability",
    "CapabilityName",
    "CapabilityRegistry",
    "CapabilityResult",
    "build_default_registry",
    "default_capabilities",
]
