"""
Client - wires transport and registry together from a ClientConfig.

Usage:
    config = load_config("resourceful.yaml")

    async with Client(config) as client:
        await client.connect()
        service = await client.service("metadata")
        contents = service.resourceful_endpoint("contents")
        page = await contents.browse(where().per_page(10))
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import ClientConfig
from .runtime.registry import Registry, ServiceDescriptor
from .runtime.transport import Transport

logger = logging.getLogger(__name__)


class Client:
    """Entry point for talking to resourceful services of one tenancy."""

    def __init__(self, config: ClientConfig, transport: Optional[Transport] = None):
        self.config = config
        self.transport = transport or Transport(
            timeout=config.timeout,
            token=config.token,
            headers=config.headers,
        )
        self.registry = Registry(
            self.transport,
            config.registry_uri,
            cache=config.cache_descriptors,
        )

    @property
    def tenant(self) -> str:
        return self.config.tenant

    async def connect(self) -> Client:
        """Load the registry for the configured tenancy."""
        await self.registry.fetch(self.config.tenant)
        return self

    async def service(self, name: str) -> ServiceDescriptor:
        """Descriptor of service `name`, from cache when enabled."""
        return await self.registry.get_service(name)

    async def set_tenancy(self, tenant: str) -> Client:
        """Switch tenancy; services and cached descriptors are reloaded."""
        logger.info(f"Switching tenancy {self.config.tenant} -> {tenant}")
        self.config.tenant = tenant
        await self.registry.fetch(tenant)
        return self

    async def close(self):
        await self.transport.close()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
