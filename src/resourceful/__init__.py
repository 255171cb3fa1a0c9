"""
Resourceful - async client for descriptor-driven REST services.

Turns the runtime descriptor of a service into typed endpoints that return
navigable entities:
- Fluent query builder for the service's query-string grammar
- Entities with validation and relationship linking
- Entity sets with pagination, linked-item partitioning and batched writes

Usage:
    from resourceful import Client, ClientConfig, where, field

    config = ClientConfig(registry_uri="https://registry.example.com", tenant="acme")
    async with Client(config) as client:
        await client.connect()
        service = await client.service("metadata")
        contents = service.resourceful_endpoint("contents")
        movies = await contents.all(where(field("type").equal_to("movie")).include("assets"))
"""

from __future__ import annotations

from .client import Client
from .config import ClientConfig, load_config
from .core import (
    BatchError,
    BatchSaveError,
    ConfigError,
    EntityValidationError,
    FieldDescriptor,
    FieldValidation,
    FilterDescriptor,
    NoEndpointError,
    NoNextPageError,
    NoPreviousPageError,
    PageMeta,
    PaginationBoundary,
    Predicate,
    Query,
    RelationshipDescriptor,
    RelationshipError,
    ResourcefulDescriptor,
    ResourcefulError,
    ServiceNotFoundError,
    TransportError,
    ValidationCode,
    field,
    param,
    text_search,
    where,
)
from .runtime import (
    Entity,
    EntitySet,
    Registry,
    ResourcefulEndpoint,
    ServiceDescriptor,
    Transport,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "Client",
    "ClientConfig",
    "load_config",
    # Query
    "Predicate",
    "Query",
    "where",
    "field",
    "param",
    "text_search",
    # Descriptor
    "ResourcefulDescriptor",
    "FieldDescriptor",
    "RelationshipDescriptor",
    "FilterDescriptor",
    "PageMeta",
    "ValidationCode",
    "FieldValidation",
    # Runtime
    "Entity",
    "EntitySet",
    "ResourcefulEndpoint",
    "Transport",
    "Registry",
    "ServiceDescriptor",
    # Errors
    "ResourcefulError",
    "NoEndpointError",
    "EntityValidationError",
    "RelationshipError",
    "PaginationBoundary",
    "NoNextPageError",
    "NoPreviousPageError",
    "TransportError",
    "BatchError",
    "BatchSaveError",
    "ServiceNotFoundError",
    "ConfigError",
]
