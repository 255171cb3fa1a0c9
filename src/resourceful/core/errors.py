"""
Custom exceptions for the resourceful client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..runtime.entity import Entity
    from ..runtime.entity_set import EntitySet


class ResourcefulError(Exception):
    """Base exception for all resourceful errors."""
    pass


class NoEndpointError(ResourcefulError):
    """Raised when an entity or entity set has no owning endpoint."""

    def __init__(self, kind: str = "resource"):
        super().__init__(
            f"No resourceful endpoint tied to this {kind}. "
            "Use endpoint.new_resource() or endpoint.browse(), "
            "or store it with endpoint.store()."
        )


class EntityValidationError(ResourcefulError):
    """Raised when an entity fails validation. Inspect `entity.errors`."""

    def __init__(self, entity: "Entity"):
        self.entity = entity
        fields = ", ".join(e.field for e in entity.errors)
        super().__init__(f"Validation failed for {entity.ref or 'new resource'}: {fields}")


class RelationshipError(ResourcefulError):
    """Raised when a relationship does not exist in the descriptor."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Relationship '{name}' does not exist")


class PaginationBoundary(ResourcefulError):
    """Raised when there is no page in the requested direction."""
    pass


class NoNextPageError(PaginationBoundary):

    def __init__(self):
        super().__init__("No next page")


class NoPreviousPageError(PaginationBoundary):

    def __init__(self):
        super().__init__("No previous page")


class TransportError(ResourcefulError):
    """Raised when a remote call fails or returns a non-2xx status."""

    def __init__(
        self,
        url: str,
        status_code: int,
        message: str,
        response: Optional[Any] = None,
    ):
        self.url = url
        self.status_code = status_code
        self.response = response
        super().__init__(f"Request to '{url}' returned {status_code}: {message}")


class BatchError(ResourcefulError):
    """Raised when one batch of a batch write fails."""

    def __init__(
        self,
        collection: "EntitySet",
        error: BaseException,
        message: Optional[str] = None,
    ):
        self.collection = collection
        self.error = error
        super().__init__(message or f"Batch of {len(collection)} failed: {error}")


class BatchSaveError(BatchError):
    """
    Raised when one or more batches of an EntitySet save fail.

    `collection` and `error` are those of the first failed batch.
    `failures` holds a BatchError per failed batch, in batch order.
    `results` has one entry per batch: the stored EntitySet, or None where
    the batch failed.
    """

    def __init__(self, failures: list[BatchError], results: list[Optional["EntitySet"]]):
        self.failures = failures
        self.results = results
        first = failures[0]
        super().__init__(
            first.collection,
            first.error,
            f"{len(failures)} of {len(results)} batches failed, first: {first.error}",
        )


class ServiceNotFoundError(ResourcefulError):
    """Raised when the registry has no service with the given name."""

    def __init__(self, name: str, cached: bool = False):
        self.name = name
        where = " is in the cache" if cached else " exists"
        super().__init__(f"No service with name {name}{where}")


class ConfigError(ResourcefulError):
    """Raised when client configuration is invalid."""
    pass
