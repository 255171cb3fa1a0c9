"""
Service registry - resolves service locations and fetches descriptors.

Usage:
    registry = Registry(transport, "https://registry.example.com", cache=True)
    await registry.fetch("acme")

    service = await registry.get_service_descriptor("metadata")
    contents = service.resourceful_endpoint("contents")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.descriptor import ResourcefulDescriptor
from ..core.errors import ServiceNotFoundError
from .endpoint import ResourcefulEndpoint
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass
class ServiceInfo:
    """A service entry of the registry."""
    name: str
    location: str
    owner: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceInfo:
        extra = {k: v for k, v in data.items() if k not in ("name", "location", "owner")}
        return cls(
            name=data["name"],
            location=data["location"],
            owner=data.get("owner"),
            extra=extra,
        )


class ServiceDescriptor:
    """
    Descriptor of one service: its resourcefuls, location and tenancy.

    Builds ResourcefulEndpoints on demand; the raw descriptor is not
    modified.
    """

    def __init__(self, transport: Transport, data: dict[str, Any]):
        self.transport = transport
        self.data = data

    @property
    def location(self) -> str:
        return self.data.get("location", "")

    @property
    def tenant(self) -> Optional[str]:
        return self.data.get("tenant")

    def resourcefuls(self) -> dict[str, dict[str, Any]]:
        return self.data.get("resourcefuls") or {}

    def resourceful_endpoint(self, name: str) -> Optional[ResourcefulEndpoint]:
        """Endpoint for resourceful `name`, or None if the service has none."""
        resourceful = self.resourcefuls().get(name)
        if resourceful is None:
            return None

        descriptor = ResourcefulDescriptor.from_raw(
            resourceful,
            location=f"{self.location}{resourceful.get('path', '')}",
            tenant=self.tenant,
        )
        return ResourcefulEndpoint(self.transport, descriptor)

    def resourceful_endpoints(self, *names: str) -> list[Optional[ResourcefulEndpoint]]:
        """Endpoints for `names`, or for every resourceful when none given."""
        return [self.resourceful_endpoint(name) for name in (names or self.resourcefuls())]


class Registry:
    """
    Resolves services for a tenant and fetches their descriptors.

    With `cache=True`, fetched descriptors are kept in a flat per-service
    dict until the next `fetch()`.
    """

    def __init__(self, transport: Transport, registry_uri: str, cache: bool = False):
        self.transport = transport
        self.registry_uri = registry_uri.rstrip("/")
        self.cache = cache
        self.tenant: Optional[str] = None
        self.services: dict[str, ServiceInfo] = {}
        self.descriptors: dict[str, dict[str, Any]] = {}

    async def fetch(self, tenant: str) -> dict[str, Any]:
        """Load the services of `tenant`, dropping any cached descriptors."""
        self.tenant = tenant
        return await self.refresh_services()

    async def refresh_services(self) -> dict[str, Any]:
        json = await self.transport.get(f"{self.registry_uri}/services/{self.tenant}")
        self.services = {
            service.name: service
            for service in (ServiceInfo.from_dict(s) for s in json.get("services", []))
        }
        self.descriptors = {}
        logger.info(f"Registry loaded {len(self.services)} services for tenant {self.tenant}")
        return json

    def get_service_location(self, name: str) -> Optional[str]:
        service = self.services.get(name)
        return service.location if service else None

    async def get_service_descriptor(self, name: str) -> ServiceDescriptor:
        """
        Fetch the descriptor of service `name`.

        Raises:
            ServiceNotFoundError: If the registry has no such service
        """
        service = self.services.get(name)
        if service is None:
            raise ServiceNotFoundError(name)

        json = await self.transport.get(
            f"{service.location}/descriptor/raw?owner={self.tenant}"
        )
        descriptor = {
            **json,
            "location": service.location,
            "owner": service.owner,
            "tenant": self.tenant,
        }

        if self.cache:
            self.descriptors[name] = descriptor
            logger.debug(f"Cached descriptor for {name}")

        return ServiceDescriptor(self.transport, descriptor)

    def get_cached_service_descriptor(self, name: str) -> ServiceDescriptor:
        """
        Raises:
            ServiceNotFoundError: If `name` has no cached descriptor
        """
        if name not in self.services or name not in self.descriptors:
            raise ServiceNotFoundError(name, cached=True)

        logger.debug(f"Descriptor cache HIT: {name}")
        return ServiceDescriptor(self.transport, self.descriptors[name])

    async def get_service(self, name: str) -> ServiceDescriptor:
        """Cached descriptor when available, otherwise fetched."""
        try:
            return self.get_cached_service_descriptor(name)
        except ServiceNotFoundError:
            return await self.get_service_descriptor(name)

    async def get_service_descriptors(self, *names: str) -> list[ServiceDescriptor]:
        return list(await asyncio.gather(
            *(self.get_service_descriptor(name) for name in (names or self.services))
        ))

    async def get_cached_service_descriptors(self, *names: str) -> list[ServiceDescriptor]:
        return list(await asyncio.gather(
            *(self.get_service(name) for name in (names or self.services))
        ))
