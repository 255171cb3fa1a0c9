"""
Core module - descriptor models, query builder, errors.
"""

from __future__ import annotations

from .descriptor import (
    DEFAULT_BATCH_SIZE,
    FieldDescriptor,
    FieldValidation,
    FilterDescriptor,
    MapKeys,
    MapValues,
    PageMeta,
    RelationshipDescriptor,
    ResourcefulDescriptor,
    TypeInfo,
    ValidationCode,
)
from .errors import (
    BatchError,
    BatchSaveError,
    ConfigError,
    EntityValidationError,
    NoEndpointError,
    NoNextPageError,
    NoPreviousPageError,
    PaginationBoundary,
    RelationshipError,
    ResourcefulError,
    ServiceNotFoundError,
    TransportError,
)
from .query import Predicate, Query, field, param, text_search, where
from .utils import to_camel_case, to_hyphenated, to_snake_case, upper_first

__all__ = [
    # Descriptor
    "DEFAULT_BATCH_SIZE",
    "FieldDescriptor",
    "FieldValidation",
    "FilterDescriptor",
    "MapKeys",
    "MapValues",
    "PageMeta",
    "RelationshipDescriptor",
    "ResourcefulDescriptor",
    "TypeInfo",
    "ValidationCode",
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
    # Query
    "Predicate",
    "Query",
    "where",
    "field",
    "param",
    "text_search",
    # Utils
    "to_snake_case",
    "to_camel_case",
    "to_hyphenated",
    "upper_first",
]
