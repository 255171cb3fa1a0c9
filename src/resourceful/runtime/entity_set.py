"""
EntitySet - a page (or accumulated pages) of entities of one resource type.

Handles:
- Splitting a raw collection payload into entities
- Partitioning the shared `linked` payload into per-entity buckets
- Pagination via the `meta` links of the payload
- Batched save/destroy respecting the service's batch limit
- Local find/filter operations
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, Optional, Union

from ..core.descriptor import PageMeta
from ..core.errors import (
    BatchError,
    BatchSaveError,
    EntityValidationError,
    NoEndpointError,
    NoNextPageError,
    NoPreviousPageError,
)
from ..core.query import Query
from ..core.utils import strip_location
from .entity import Entity

if TYPE_CHECKING:
    from .endpoint import ResourcefulEndpoint

logger = logging.getLogger(__name__)

Criteria = Union[str, Query, None]

_PAGE_PARAM_PATTERN = re.compile(r'([?&])page=\d+')

_MISSING = object()


class EntitySet:
    """
    A collection of entities sharing one resource type.

    Usage:
        contents = await endpoint.browse(where().include("assets").per_page(24))
        for content in contents:
            content.linked["assets"]   # only the assets of this content

        try:
            page_two = await contents.next_page()
        except NoNextPageError:
            ...

        await endpoint.new_entity_set([{...}, {...}]).save()
    """

    def __init__(
        self,
        raw_data: Optional[dict[str, Any]] = None,
        initial_criteria: Criteria = None,
        endpoint: Optional[ResourcefulEndpoint] = None,
    ):
        self.initial_criteria = initial_criteria
        self.endpoint = endpoint
        self.collection: list[Entity] = []
        self.raw_data: dict[str, Any] = {}

        self.set_data(raw_data)

    @classmethod
    def of(cls, entities: list[Entity], endpoint: ResourcefulEndpoint) -> EntitySet:
        """Build a set around existing entities, keeping their identity."""
        entity_set = cls(
            {endpoint.plural_name: [entity.to_json() for entity in entities]},
            endpoint=endpoint,
        )
        entity_set.collection = list(entities)
        return entity_set

    # -------------------------------------------------------------------------
    # Binding raw payloads
    # -------------------------------------------------------------------------

    def set_data(self, raw_data: Optional[dict[str, Any]]) -> EntitySet:
        """
        Bind this set to a raw payload.

        With an endpoint, every item under the endpoint's plural name becomes
        an Entity. When the payload has a `linked` map, each entity gets only
        the linked items that belong to it.
        """
        self.raw_data = raw_data or {}

        if self.endpoint is None:
            return self

        items = self.raw_data.get(self.endpoint.plural_name)
        if not isinstance(items, list):
            return self

        linked = self.raw_data.get("linked") or {}
        self.collection = [self._build_entity(item, linked) for item in items]
        return self

    def _build_entity(self, item: dict[str, Any], linked: dict[str, list]) -> Entity:
        data = dict(item)
        if linked:
            data["linked"] = {
                name: [link for link in links if self._belongs_to(data, name, link)]
                for name, links in linked.items()
            }
        return Entity(data, self.endpoint)

    def _belongs_to(self, resource: dict[str, Any], name: str, item: dict[str, Any]) -> bool:
        """
        Whether linked `item` of relationship `name` belongs to `resource`.

        1. Items carrying `<singularName>Ref` match on that back-reference.
        2. Relationships without a `through` are shared by every entity.
        3. Through relationships match when one of the resource's through
           foreign keys equals the item's value at the filter field path.
        """
        back_reference = f"{self.endpoint.singular_name}Ref"
        if item.get(back_reference):
            return item[back_reference] == resource.get("ref")

        relationships = self.endpoint.relationships
        relationship = relationships.get(name)
        if relationship is None or not relationship.through:
            return True

        through = relationships.get(relationship.through)
        if through is None or not through.field_name_path:
            return False

        through_values = resource.get(through.field_name_path) or []
        if not isinstance(through_values, list):
            through_values = [through_values]

        filter_descriptor = self.endpoint.descriptor.filters.get(relationship.filter_name or "")
        if filter_descriptor is None or not filter_descriptor.field_name_path:
            return False

        value = item.get(filter_descriptor.field_name_path)
        return any(through_value == value for through_value in through_values)

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------

    @property
    def meta(self) -> PageMeta:
        return PageMeta.model_validate(self.raw_data.get("meta") or {})

    @property
    def page(self) -> Optional[int]:
        return self.meta.page

    @property
    def per_page(self) -> Optional[int]:
        return self.meta.per_page

    @property
    def total_count(self) -> int:
        """`meta.totalCount` when the service sent it, else the local size."""
        total_count = self.meta.total_count
        if total_count:
            return total_count
        return len(self.collection)

    async def next_page(self) -> EntitySet:
        """
        Raises:
            NoNextPageError: If the payload has no `meta.next` link
        """
        next_link = self.meta.next
        if not next_link:
            raise NoNextPageError()
        return await self.fetch(next_link)

    async def previous_page(self) -> EntitySet:
        """
        Raises:
            NoPreviousPageError: If the payload has no `meta.prev` link
        """
        prev_link = self.meta.prev
        if not prev_link:
            raise NoPreviousPageError()
        return await self.fetch(prev_link)

    async def first_page(self) -> EntitySet:
        return await self.fetch(self.meta.first)

    async def last_page(self) -> EntitySet:
        return await self.fetch(self.meta.last)

    async def get_page(self, page_number: int) -> EntitySet:
        first = self.meta.first or ""
        if _PAGE_PARAM_PATTERN.search(first):
            criteria = _PAGE_PARAM_PATTERN.sub(rf'\g<1>page={page_number}', first, count=1)
        else:
            criteria = f"{first}&page={page_number}"
        return await self.fetch(criteria)

    async def fetch(self, criteria: Criteria = None) -> EntitySet:
        """
        Browse with `criteria` (or the initial criteria) and re-bind this set.

        Continuation links carry the full path and the owner parameter; both
        are stripped since the endpoint adds them back.

        Returns:
            The newly fetched EntitySet
        """
        if not criteria:
            criteria = self.initial_criteria or ""
        if isinstance(criteria, str):
            criteria = strip_location(criteria)

        endpoint = self._require_endpoint()
        logger.debug(f"Fetching {endpoint.plural_name} page: {criteria}")

        fetched = await endpoint.browse(criteria)
        self.raw_data = fetched.raw_data
        self.collection = fetched.collection
        return fetched

    # -------------------------------------------------------------------------
    # Serialization and batching
    # -------------------------------------------------------------------------

    def to_json(self) -> list[dict[str, Any]]:
        return [entity.to_json() for entity in self.collection]

    def serialise(self) -> dict[str, Any]:
        endpoint = self._require_endpoint()
        return {endpoint.plural_name: self.to_json()}

    def explode(self, size: Optional[int] = None) -> list[EntitySet]:
        """
        Split into sets of at most `size` entities (default: the batch size).

        The last set holds the remainder; no entity is dropped.
        """
        endpoint = self._require_endpoint()
        batch_size = size if size is not None else endpoint.batch_size
        if batch_size < 1:
            raise ValueError(f"Batch size must be positive, got {batch_size}")

        return [
            EntitySet.of(self.collection[start:start + batch_size], endpoint)
            for start in range(0, len(self.collection), batch_size)
        ]

    async def save(self, batch_size: Optional[int] = None) -> list[EntitySet]:
        """
        Store every batch concurrently.

        All batches settle before this returns. A failing batch does not
        cancel the others and nothing is rolled back.

        Returns:
            The stored EntitySet of each batch, in batch order

        Raises:
            BatchSaveError: If any batch failed. `failures` holds a BatchError
                per failed batch (each with its `collection`); `results` has
                the stored set of every batch, None for the failed ones.
        """
        endpoint = self._require_endpoint()
        batches = self.explode(batch_size)

        outcomes = await asyncio.gather(
            *(self._store_batch(endpoint, batch) for batch in batches),
            return_exceptions=True,
        )

        failures: list[BatchError] = []
        results: list[Optional[EntitySet]] = []
        for outcome in outcomes:
            if isinstance(outcome, BatchError):
                logger.error(f"Failed to store {endpoint.plural_name} batch: {outcome}")
                failures.append(outcome)
                results.append(None)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)

        if failures:
            raise BatchSaveError(failures, results)
        return results

    async def _store_batch(self, endpoint: ResourcefulEndpoint, batch: EntitySet) -> EntitySet:
        try:
            return await endpoint.store(batch)
        except Exception as e:
            raise BatchError(batch, e) from e

    def validate(self) -> EntitySet:
        """
        Validate every entity; each keeps its own `errors`.

        Raises:
            EntityValidationError: For the first invalid entity
        """
        failures: list[EntityValidationError] = []
        for entity in self.collection:
            try:
                entity.validate()
            except EntityValidationError as e:
                failures.append(e)

        if failures:
            raise failures[0]
        return self

    async def destroy(self) -> list[dict[str, Any]]:
        """Delete every entity, one request per batch of refs."""
        endpoint = self._require_endpoint()
        return list(await asyncio.gather(
            *(
                endpoint.destroy(",".join(entity.ref for entity in batch.collection))
                for batch in self.explode()
            )
        ))

    # -------------------------------------------------------------------------
    # Local collection operations
    # -------------------------------------------------------------------------

    def add(self, data: Union[Entity, dict[str, Any]]) -> Entity:
        """Append an entity, building a new one from plain data."""
        if isinstance(data, Entity):
            entity = data
        else:
            entity = self._require_endpoint().new_resource(data)

        self.collection.append(entity)
        return entity

    def remove(self, ref: str) -> Optional[Entity]:
        for index, entity in enumerate(self.collection):
            if entity.ref == ref:
                return self.collection.pop(index)
        return None

    def find(self, ref: str) -> Optional[Entity]:
        return next((entity for entity in self.collection if entity.ref == ref), None)

    def where(
        self,
        criteria: Union[Callable[[Entity], bool], Mapping[str, Any]],
    ) -> list[Entity]:
        """
        Entities matching `criteria`.

        A callable is used as a predicate. A mapping matches entities whose
        fields equal every value given; a non-null `ref` short-circuits to a
        ref comparison. Equality is shallow: dicts and lists only match the
        very same object, booleans never equal numbers, and a missing field
        never equals an explicit None.
        """
        if callable(criteria):
            predicate = criteria
        elif isinstance(criteria, Mapping):
            if criteria.get("ref") is not None:
                ref = criteria["ref"]

                def predicate(entity: Entity) -> bool:
                    return entity.ref == ref
            else:
                def predicate(entity: Entity) -> bool:
                    return all(
                        _strict_equal(entity.data.get(key, _MISSING), value)
                        for key, value in criteria.items()
                    )
        else:
            return []

        return [entity for entity in self.collection if predicate(entity)]

    def find_where(
        self,
        criteria: Union[Callable[[Entity], bool], Mapping[str, Any]],
    ) -> Optional[Entity]:
        entities = self.where(criteria)
        return entities[0] if entities else None

    def find_or_create(self, resource: Union[Entity, dict[str, Any]]) -> Entity:
        """Find an entity shaped like `resource`, or add it."""
        criteria = resource.to_json() if isinstance(resource, Entity) else resource
        existing = self.find_where(criteria)
        if existing is not None:
            return existing
        return self.add(resource)

    def __len__(self) -> int:
        return len(self.collection)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.collection)

    def __getitem__(self, index: int) -> Entity:
        return self.collection[index]

    def __repr__(self) -> str:
        kind = self.endpoint.plural_name if self.endpoint else "entities"
        return f"<EntitySet {kind} size={len(self.collection)}>"

    def _require_endpoint(self) -> ResourcefulEndpoint:
        if self.endpoint is None:
            raise NoEndpointError("resource collection")
        return self.endpoint


def _strict_equal(left: Any, right: Any) -> bool:
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return left is right
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right
