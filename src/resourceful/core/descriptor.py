"""
Pydantic models for the resourceful service descriptor.

The descriptor is fetched at runtime from each service and describes every
resource type it exposes: fields (with validation rules), relationships and
operation limits. These models give read-only, typed access to it.

Wire keys are camelCase ("pluralName", "fieldNamePath"); attributes are
snake_case. Unknown keys are kept as extra attributes.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .utils import to_camel_case, to_hyphenated


DEFAULT_BATCH_SIZE = 100
ARRAY_FIELD_SUFFIX = "Refs"


class DescriptorModel(BaseModel):
    """Base for descriptor models: camelCase aliases, frozen, extra allowed."""

    model_config = ConfigDict(
        alias_generator=to_camel_case,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )


# --- Field rules ---

class MapKeys(DescriptorModel):
    """Key rule for map-typed fields."""
    pattern: str = ".*"


class MapValues(DescriptorModel):
    """Allowed values for a single key of a map-typed field."""
    values: list[Any] = Field(default_factory=list)


class TypeInfo(DescriptorModel):
    """
    Type information for a field.

    Simple values carry a `pattern`; map values carry `keys` and,
    optionally, per-key allowed `values`.
    """
    pattern: Optional[str] = None
    keys: Optional[MapKeys] = None
    values: Optional[dict[str, MapValues]] = None


class FieldDescriptor(DescriptorModel):
    """Definition of a resource field."""
    type: Optional[str] = None
    required: bool = False
    read_only: bool = False
    default: Any = None
    allowed_value_mappings: Optional[dict[str, Any]] = None
    type_info: Optional[TypeInfo] = None


# --- Relationships and filters ---

class RelationshipDescriptor(DescriptorModel):
    """
    Definition of a relationship to another resource type.

    direct:   this resource holds the foreign key (`field_name_path`)
    indirect: the other resource holds the foreign key back to this one
    through:  an indirect relationship correlated via another relationship's
              foreign-key field, named by `through`
    """
    name: Optional[str] = None
    type: Literal["direct", "indirect"] = "direct"
    resource_type: Optional[str] = None
    field_name_path: Optional[str] = None
    filter_name: Optional[str] = None
    through: Optional[str] = None
    fields: list[str] = Field(default_factory=list)
    batch_size: Optional[int] = None

    @property
    def is_array(self) -> bool:
        """True when the foreign key field holds a list of refs."""
        return bool(self.field_name_path) and self.field_name_path.endswith(ARRAY_FIELD_SUFFIX)


class FilterDescriptor(DescriptorModel):
    """Definition of a named query filter."""
    field_name_path: Optional[str] = None


# --- Resourceful ---

class ResourcefulDescriptor(DescriptorModel):
    """
    Descriptor for one resource type of a service.

    `location` and `tenant` are not part of the raw descriptor; they are
    merged in when the endpoint is built from a service descriptor.
    """
    plural_name: str
    singular_name: str
    hyphenated_plural_name: str
    service_name: Optional[str] = None
    path: Optional[str] = None
    location: str = ""
    tenant: Optional[str] = None
    fields: dict[str, FieldDescriptor] = Field(default_factory=dict)
    relationships: dict[str, RelationshipDescriptor] = Field(default_factory=dict)
    filters: dict[str, FilterDescriptor] = Field(default_factory=dict)
    operations: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fill_names(cls, data: Any) -> Any:
        """Relationships take their key as name; the URL segment defaults from the plural name."""
        if not isinstance(data, dict):
            return data
        if not data.get("hyphenatedPluralName") and data.get("pluralName"):
            data = {**data, "hyphenatedPluralName": to_hyphenated(data["pluralName"])}
        if isinstance(data.get("relationships"), dict):
            relationships = {}
            for name, relationship in data["relationships"].items():
                if isinstance(relationship, dict) and not relationship.get("name"):
                    relationship = {**relationship, "name": name}
                relationships[name] = relationship
            data = {**data, "relationships": relationships}
        return data

    @classmethod
    def from_raw(cls, data: dict[str, Any], **extra: Any) -> ResourcefulDescriptor:
        """Build from raw descriptor JSON, merging in `extra` keys."""
        return cls.model_validate({**data, **extra})

    @property
    def field_names(self) -> list[str]:
        return list(self.fields)

    @property
    def batch_size(self) -> int:
        """Maximum entities per write, from `operations.storeBatch.limit`."""
        store_batch = self.operations.get("storeBatch") or {}
        return store_batch.get("limit") or DEFAULT_BATCH_SIZE


# --- Pagination ---

class PageMeta(DescriptorModel):
    """`meta` block of a collection response."""
    page: Optional[int] = None
    per_page: Optional[int] = None
    total_count: Optional[int] = None
    next: Optional[str] = None
    prev: Optional[str] = None
    first: Optional[str] = None
    last: Optional[str] = None


# --- Validation results ---

class ValidationCode(IntEnum):
    """Outcome of validating a single field."""
    NONE = 0
    NO_FIELD = 1
    REQUIRED_FIELD = 2
    NOT_ALLOWED = 3
    INVALID_VALUE = 4
    INVALID_MAP = 5


class FieldValidation(BaseModel):
    """Result of Entity.validate_field()."""
    code: ValidationCode
    field: str
    message: str = ""
    type_info: Optional[TypeInfo] = None
    valid: bool
