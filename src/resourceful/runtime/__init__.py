"""
Runtime module - entities, endpoints and I/O.
"""

from __future__ import annotations

from .endpoint import ResourcefulEndpoint
from .entity import Entity
from .entity_set import EntitySet
from .registry import Registry, ServiceDescriptor, ServiceInfo
from .transport import Transport

__all__ = [
    "Entity",
    "EntitySet",
    "ResourcefulEndpoint",
    "Transport",
    "Registry",
    "ServiceDescriptor",
    "ServiceInfo",
]
