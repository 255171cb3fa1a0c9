"""
ResourcefulEndpoint - remote CRUD for one resource type of a service.

Builds Entities and EntitySets from service responses, resolves
relationships from the descriptor and accumulates every page of a browse.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from ..core.descriptor import FieldDescriptor, RelationshipDescriptor, ResourcefulDescriptor
from ..core.errors import NoNextPageError, RelationshipError
from ..core.query import Query
from .entity import Entity
from .entity_set import Criteria, EntitySet
from .transport import Transport

logger = logging.getLogger(__name__)


class ResourcefulEndpoint:
    """
    Remote CRUD for one resource type.

    Obtain endpoints from a ServiceDescriptor:

        service = await client.service("metadata")
        contents = service.resourceful_endpoint("contents")

        page = await contents.browse(where(field("type").equal_to("movie")))
        everything = await contents.all(where().include("assets"))
        content = await contents.read_one("acme:my-content")

        new_content = contents.new_resource({"name": "x", "title": "X"})
        await new_content.save()
    """

    def __init__(
        self,
        transport: Transport,
        descriptor: Union[ResourcefulDescriptor, dict[str, Any]],
    ):
        """
        Initialize endpoint.

        Args:
            transport: HTTP transport
            descriptor: Resourceful descriptor including `location` and `tenant`
        """
        self.transport = transport
        if isinstance(descriptor, dict):
            descriptor = ResourcefulDescriptor.from_raw(descriptor)
        self.descriptor = descriptor

    # -------------------------------------------------------------------------
    # Descriptor accessors
    # -------------------------------------------------------------------------

    @property
    def owner(self) -> Optional[str]:
        """Current tenancy."""
        return self.descriptor.tenant

    @property
    def plural_name(self) -> str:
        """Key of the item array in responses, e.g. `contents`."""
        return self.descriptor.plural_name

    @property
    def singular_name(self) -> str:
        return self.descriptor.singular_name

    @property
    def hyphenated_plural_name(self) -> str:
        """URL segment, e.g. `content-segments` for `contentSegments`."""
        return self.descriptor.hyphenated_plural_name

    @property
    def service_name(self) -> Optional[str]:
        return self.descriptor.service_name

    @property
    def fields(self) -> dict[str, FieldDescriptor]:
        return self.descriptor.fields

    @property
    def relationships(self) -> dict[str, RelationshipDescriptor]:
        return self.descriptor.relationships

    @property
    def batch_size(self) -> int:
        """How many entities may be stored in one request."""
        return self.descriptor.batch_size

    def relationship_for(self, resource_type: str) -> RelationshipDescriptor:
        """
        Relationship whose `resourceType` is `resource_type`.

        Raises:
            RelationshipError: If no relationship targets that type
        """
        relationship = next(
            (r for r in self.relationships.values() if r.resource_type == resource_type),
            None,
        )
        if relationship is None:
            raise RelationshipError(resource_type)
        return relationship

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    def new_resource(self, data: Optional[dict[str, Any]] = None) -> Entity:
        """
        A new (not yet stored) entity for this endpoint.

        `owner` defaults to the current tenancy. With a `name` and no `ref`,
        the ref is derived as `<owner>:<name>` so the entity can be linked
        before it is saved.
        """
        data = dict(data or {})
        data["owner"] = data.get("owner") or self.owner

        if data.get("ref") is None and data["owner"] and data.get("name"):
            data["ref"] = f"{data['owner']}:{data['name']}"

        return Entity({**data, "is_new": True}, self)

    def new_entity_set(
        self,
        data: Union[list[dict[str, Any]], dict[str, Any], None] = None,
    ) -> EntitySet:
        """A new EntitySet of new entities, e.g. for ingest."""
        if isinstance(data, dict):
            logger.warning(
                "Using new_entity_set with a payload dict is deprecated - pass a list instead"
            )
            return EntitySet(data, "", self)

        entity_set = EntitySet({self.plural_name: []}, "", self)
        for item in data or []:
            entity_set.add(item)
        return entity_set

    # -------------------------------------------------------------------------
    # Remote operations
    # -------------------------------------------------------------------------

    async def browse(self, criteria: Criteria = None, **options: Any) -> EntitySet:
        """
        Fetch the first page of results matching `criteria`.

        Included through relationships get their foreign-key field added to
        the requested fields.
        """
        url = self.endpoint_url(None, self.related_through_fields(criteria))
        json = await self.transport.get(url, **options)
        return EntitySet(json, criteria, self)

    def related_through_fields(self, criteria: Criteria) -> Criteria:
        """
        A copy of a Query with through-relationship fields added.

        Plain strings, such as continuation links, are sent as they are.
        """
        if not isinstance(criteria, Query):
            return criteria

        query = Query(criteria.query)
        query.sort = criteria.sort
        query.sort_modifier = criteria.sort_modifier
        return query.add_related_through_fields(self.relationships, self.descriptor.field_names)

    async def all(self, criteria: Criteria = None, **options: Any) -> EntitySet:
        """
        Fetch every page matching `criteria` as one EntitySet.

        Pages are fetched one after the other, following `meta.next`. Items
        and linked items are concatenated before entities are built, so
        linked items are matched against the full result.
        """
        current = await self.browse(criteria, **options)
        accumulated = _copy_payload(current.raw_data, self.plural_name)
        pages = 1

        while True:
            try:
                current = await current.next_page()
            except NoNextPageError:
                break

            pages += 1
            _merge_payload(accumulated, current.raw_data, self.plural_name)

        logger.debug(f"Accumulated {pages} pages of {self.plural_name}")
        return EntitySet(accumulated, criteria, self)

    async def read_one(self, ref: str, criteria: Criteria = None, **options: Any) -> Entity:
        json = await self.transport.get(self.endpoint_url(ref, criteria), **options)
        return self.response_to_resource(json)

    async def read_many(
        self,
        refs: list[str],
        criteria: Criteria = None,
        **options: Any,
    ) -> EntitySet:
        json = await self.transport.get(self.endpoint_url(",".join(refs), criteria), **options)
        return EntitySet(json, criteria, self)

    async def store(
        self,
        resource: Union[Entity, EntitySet],
        **options: Any,
    ) -> Union[Entity, EntitySet]:
        """POST a new entity, or a batch of them as an EntitySet."""
        json = await self.transport.post(self.endpoint_url(), json=resource.serialise(), **options)
        if isinstance(resource, EntitySet):
            return EntitySet(json, None, self)
        return self.response_to_resource(json)

    async def update(self, resource: Entity, **options: Any) -> Entity:
        """PUT an existing entity."""
        json = await self.transport.put(
            self.endpoint_url(resource.ref),
            json=resource.serialise(),
            **options,
        )
        return self.response_to_resource(json)

    async def destroy(self, resource: Union[Entity, str], **options: Any) -> dict[str, Any]:
        """DELETE an entity, or a ref (comma-joined refs for many)."""
        ref = resource if isinstance(resource, str) else resource.ref
        return await self.transport.destroy(self.endpoint_url(ref), **options)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def response_to_resource(self, json: dict[str, Any]) -> Entity:
        """
        First item of a single-resource response as an Entity.

        The response's `linked` map is attached to it unfiltered.
        """
        item = dict(json[self.plural_name][0])
        item["linked"] = json.get("linked") or {}
        return Entity(item, self)

    def criteria_to_query(self, criteria: Criteria = None) -> str:
        """Query string for a request; `owner` always comes first."""
        query = f"?owner={self.owner}"

        if isinstance(criteria, Query):
            criteria = criteria.to_query_string()
        if criteria:
            query += f"&{criteria.lstrip('&')}"

        return query

    def endpoint_url(self, ref: Optional[str] = None, criteria: Criteria = None) -> str:
        """Full URL of the collection, or of `ref` within it."""
        resource_ref = f"/{ref}" if ref else ""
        return (
            f"{self.descriptor.location}/{self.hyphenated_plural_name}"
            f"{resource_ref}{self.criteria_to_query(criteria)}"
        )

    def __repr__(self) -> str:
        return f"<ResourcefulEndpoint {self.plural_name} owner={self.owner!r}>"


def _copy_payload(raw_data: dict[str, Any], plural_name: str) -> dict[str, Any]:
    """Copy a payload deep enough that merging does not touch the original."""
    payload = dict(raw_data)
    payload[plural_name] = list(raw_data.get(plural_name) or [])
    payload["linked"] = {
        name: list(items) for name, items in (raw_data.get("linked") or {}).items()
    }
    return payload


def _merge_payload(accumulated: dict[str, Any], raw_data: dict[str, Any], plural_name: str):
    """Append the items and linked items of `raw_data` to `accumulated`."""
    accumulated[plural_name].extend(raw_data.get(plural_name) or [])
    for name, items in (raw_data.get("linked") or {}).items():
        accumulated["linked"].setdefault(name, []).extend(items)
    if "meta" in raw_data:
        accumulated["meta"] = raw_data["meta"]
