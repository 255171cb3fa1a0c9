"""
Entity - a single resource record bound to a resourceful endpoint.

An entity keeps its bookkeeping (ref, is_new, linked, errors, pending
indirect links) apart from the open `data` dict of field values, so field
names from the descriptor never collide with client-side state.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Optional, Union

from ..core.descriptor import (
    FieldDescriptor,
    FieldValidation,
    RelationshipDescriptor,
    ValidationCode,
)
from ..core.errors import EntityValidationError, NoEndpointError, RelationshipError

if TYPE_CHECKING:
    from .endpoint import ResourcefulEndpoint

logger = logging.getLogger(__name__)


class Entity:
    """
    A resource record.

    Obtain entities from a ResourcefulEndpoint rather than building them
    directly:

        content = await contents.read_one("acme:my-content")
        content["title"] = "Something else"
        await content.save()

        new_content = contents.new_resource({"name": "x", "title": "New"})
        new_content.link(asset)           # relationship inferred from type
        new_content.validate()
        await new_content.save()

    An entity built without an endpoint is a read-only value object: it
    cannot be validated, saved or destroyed.
    """

    def __init__(
        self,
        raw_data: Optional[dict[str, Any]] = None,
        endpoint: Optional[ResourcefulEndpoint] = None,
    ):
        data = dict(raw_data or {})
        self.raw_data = raw_data or {}
        self.endpoint = endpoint
        self.is_new: bool = bool(data.pop("is_new", False))
        self.linked: dict[str, list[dict[str, Any]]] = data.pop("linked", None) or {}
        self.data: dict[str, Any] = data
        self.errors: list[FieldValidation] = []
        self.indirectly_linked_resources: list[Entity] = []

    # -------------------------------------------------------------------------
    # Field access
    # -------------------------------------------------------------------------

    @property
    def ref(self) -> Optional[str]:
        return self.data.get("ref")

    @ref.setter
    def ref(self, value: Optional[str]):
        self.data["ref"] = value

    @property
    def owner(self) -> Optional[str]:
        return self.data.get("owner")

    @owner.setter
    def owner(self, value: Optional[str]):
        self.data["owner"] = value

    def __getattr__(self, name: str) -> Any:
        # Only called when normal lookup fails; fall through to field values.
        data = self.__dict__.get("data")
        if data is not None and name in data:
            return data[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __getitem__(self, name: str) -> Any:
        return self.data[name]

    def __setitem__(self, name: str, value: Any):
        self.data[name] = value

    def __delitem__(self, name: str):
        del self.data[name]

    def __contains__(self, name: object) -> bool:
        return name in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def update(self, values: dict[str, Any]) -> Entity:
        self.data.update(values)
        return self

    def __repr__(self) -> str:
        kind = self.endpoint.singular_name if self.endpoint else "entity"
        return f"<Entity {kind} ref={self.ref!r}{' new' if self.is_new else ''}>"

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    @property
    def fields(self) -> Optional[dict[str, FieldDescriptor]]:
        """Field descriptors of the owning endpoint, or None when unbound."""
        if self.endpoint is not None:
            return self.endpoint.fields
        return None

    def to_json(self) -> dict[str, Any]:
        """
        Field values as sent over the wire.

        Bound to a descriptor, exactly the descriptor's fields are emitted,
        using the descriptor default for fields that were never set.
        Unbound, the stored field values are returned as they are.
        """
        fields = self.fields
        if fields is None:
            return dict(self.data)

        return {
            name: self.data[name] if name in self.data else descriptor.default
            for name, descriptor in fields.items()
        }

    def serialise(self) -> dict[str, Any]:
        """Wrap to_json() in the `{<pluralName>: [...]}` envelope."""
        endpoint = self._require_endpoint()
        return {endpoint.plural_name: [self.to_json()]}

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _require_endpoint(self) -> ResourcefulEndpoint:
        if self.endpoint is None:
            raise NoEndpointError("resource")
        return self.endpoint

    async def flush(self) -> Entity:
        """Store (new) or update (existing) this entity only."""
        endpoint = self._require_endpoint()
        if self.is_new:
            return await endpoint.store(self)
        return await endpoint.update(self)

    async def save_indirect_links(self) -> list[Entity]:
        if not self.indirectly_linked_resources:
            return []
        return list(await asyncio.gather(
            *(resource.save() for resource in self.indirectly_linked_resources)
        ))

    async def save(self) -> Entity:
        """
        Save pending indirect links, then this entity.

        Indirectly linked entities are saved before this one; when this
        entity is new, the remote side may briefly hold links to a ref that
        does not exist yet. There is no atomicity across the calls.

        Returns:
            The entity returned by the service for this record
        """
        self._require_endpoint()
        if self.indirectly_linked_resources:
            logger.debug(
                f"Saving {len(self.indirectly_linked_resources)} indirect links of {self.ref}"
            )
        await self.save_indirect_links()
        result = await self.flush()
        self.indirectly_linked_resources = []
        return result

    async def destroy(self) -> dict[str, Any]:
        endpoint = self._require_endpoint()
        return await endpoint.destroy(self)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_field(self, name: str) -> FieldValidation:
        """
        Validate a single field against its descriptor.

        Checks, in order: field exists, required, read-only (always valid),
        allowed values, pattern, map keys/values.
        """
        fields = self._require_endpoint().fields
        code = ValidationCode.NONE
        message = ""
        type_info = None

        if name not in fields:
            code = ValidationCode.NO_FIELD
            message = f"{name} does not exist"
        else:
            descriptor = fields[name]
            type_info = descriptor.type_info
            value = self.data.get(name)

            if value is None:
                if descriptor.required:
                    code = ValidationCode.REQUIRED_FIELD
                    message = f"{name} is required"
            elif descriptor.read_only:
                pass
            elif descriptor.allowed_value_mappings is not None:
                allowed = list(descriptor.allowed_value_mappings.values())
                if value not in allowed:
                    code = ValidationCode.NOT_ALLOWED
                    message = f"{name} is not one of {', '.join(str(v) for v in allowed)}"
            elif type_info is not None:
                if type_info.pattern is not None:
                    if not _matches(type_info.pattern, value):
                        code = ValidationCode.INVALID_VALUE
                        message = f"{name} does not match {type_info.pattern}"
                elif type_info.keys is not None:
                    code, message = _validate_map(name, value, type_info)

        return FieldValidation(
            code=code,
            field=name,
            message=message,
            type_info=type_info,
            valid=code == ValidationCode.NONE,
        )

    def validate(self) -> Entity:
        """
        Validate every descriptor field, collecting failures in `errors`.

        Raises:
            EntityValidationError: If any field is invalid
        """
        fields = self._require_endpoint().fields
        self.errors = []

        for name in fields:
            validation = self.validate_field(name)
            if not validation.valid:
                self.errors.append(validation)

        if self.errors:
            raise EntityValidationError(self)
        return self

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def relationship_for(self, target: Union[str, Entity]) -> RelationshipDescriptor:
        """
        Relationship to `target`.

        A string is looked up as a relationship name; an entity by its
        endpoint's plural resource-type name.

        Raises:
            RelationshipError: If no such relationship exists
        """
        endpoint = self._require_endpoint()

        if isinstance(target, str):
            relationship = endpoint.relationships.get(target)
            if relationship is None:
                raise RelationshipError(target)
            return relationship

        target_endpoint = target._require_endpoint()
        return endpoint.relationship_for(target_endpoint.plural_name)

    def link(
        self,
        resource: Union[Entity, Iterable[Entity]],
        as_: Optional[str] = None,
    ) -> Entity:
        """
        Link one entity, or each entity of an iterable, to this entity.

        direct:   the target's ref is written onto this entity's foreign key
                  field (appended, without duplicates, for `...Refs` fields)
        indirect: this entity's ref is written onto the target's foreign key
                  field and the target is saved along with this entity

        Linking several entities through a single-ref field leaves only the
        last ref in place.

        Args:
            resource: An Entity, or an iterable of entities
            as_: Relationship name, when it can't be inferred from the type

        Returns:
            self
        """
        resources = [resource] if isinstance(resource, Entity) else list(resource)
        for target in resources:
            self._link_one(target, as_)
        return self

    def _link_one(self, resource: Entity, as_: Optional[str]):
        relationship = self.relationship_for(as_ or resource)

        if relationship.type == "direct":
            _link_ref(resource.ref, relationship, self)
        elif relationship.type == "indirect":
            # `as_` names this side only; the target's side is found by type
            _link_ref(self.ref, resource.relationship_for(self), resource)
            self.indirectly_linked_resources.append(resource)

    def has_linked(self, relationship: str) -> bool:
        return bool(self.linked.get(relationship))

    def linked_of_type(self, relationship: str, type_: str) -> list[dict[str, Any]]:
        """Linked items of `relationship` whose `type` equals `type_`."""
        if not self.has_linked(relationship):
            return []
        return [item for item in self.linked[relationship] if item.get("type") == type_]

    # -------------------------------------------------------------------------
    # Linked asset shortcuts
    # -------------------------------------------------------------------------

    @property
    def images(self) -> list[dict[str, Any]]:
        return self.linked_of_type("assets", "image")

    @property
    def videos(self) -> list[dict[str, Any]]:
        return self.linked_of_type("assets", "video")

    @property
    def trailers(self) -> list[dict[str, Any]]:
        """Videos tagged as trailers; untagged videos count as both kinds."""
        return [
            video for video in self.videos
            if not video.get("tags") or _has_any_tag(video, _TRAILER_TAGS)
        ]

    @property
    def main_videos(self) -> list[dict[str, Any]]:
        return [
            video for video in self.videos
            if not video.get("tags") or not _has_any_tag(video, _TRAILER_TAGS)
        ]

    def primary_box_art(self) -> Optional[dict[str, Any]]:
        return next(
            (image for image in self.images if _has_any_tag(image, ("portrait", "usage:boxart"))),
            None,
        )

    def primary_still(self) -> Optional[dict[str, Any]]:
        return next(
            (image for image in self.images if _has_any_tag(image, ("usage:still", "landscape"))),
            None,
        )

    def trailer(self) -> Optional[dict[str, Any]]:
        """The `console:primary` trailer, else the first trailer."""
        trailers = self.trailers
        primary = next(
            (video for video in trailers if _has_any_tag(video, ("console:primary",))),
            None,
        )
        if primary is not None:
            return primary
        return trailers[0] if trailers else None

    def main_video(self, file_format: str) -> Optional[dict[str, Any]]:
        return next(
            (video for video in self.main_videos if video.get("fileFormat") == file_format),
            None,
        )


def _link_ref(ref: Optional[str], relationship: RelationshipDescriptor, resource: Entity):
    """Write `ref` onto `resource`'s foreign key field for `relationship`."""
    path = relationship.field_name_path
    if not path:
        raise RelationshipError(relationship.name or "<unnamed>")

    if relationship.is_array:
        existing = resource.data.get(path)
        if not isinstance(existing, list):
            resource.data[path] = [ref]
        elif ref not in existing:
            existing.append(ref)
    else:
        resource.data[path] = ref


_TRAILER_TAGS = ("trailerondemand", "usage:trailer")


def _has_any_tag(item: dict[str, Any], tags: Iterable[str]) -> bool:
    item_tags = item.get("tags") or []
    return any(tag in item_tags for tag in tags)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _matches(pattern: str, value: Any) -> bool:
    return re.search(pattern, _as_text(value)) is not None


def _validate_map(name: str, value: Any, type_info) -> tuple[ValidationCode, str]:
    """Check every key (and, where declared, its value) of a map field."""
    if not isinstance(value, dict):
        return ValidationCode.INVALID_MAP, f"{name} is not a map. "

    code = ValidationCode.NONE
    message = ""
    key_pattern = type_info.keys.pattern

    for key, item in value.items():
        if not _matches(key_pattern, key):
            message += f"{name}.{key} does not match {key_pattern}. "
            code = ValidationCode.INVALID_MAP
        elif type_info.values is not None and key in type_info.values:
            allowed = type_info.values[key].values
            if item not in allowed:
                message += f"{name}.{key} is not one of {', '.join(str(v) for v in allowed)}. "
                code = ValidationCode.INVALID_MAP

    return code, message
