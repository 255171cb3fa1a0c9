"""
Fluent query builder for resourceful endpoints.

Builds the query-string grammar understood by resourceful services:

    where(field("startedAt").greater_than_or_equal_to(2015))
        .and_(field("tags").equal_to("showcase"))
        .fields("title", "duration", "ref")
        .include("assets")
        .per_page(24)
        .order_by_updated_at()
        .desc()
        .count()

Predicates produce single `name=expression` fragments; Query accumulates them
as `&`-joined fragments, with the sort directive rendered last.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

from .descriptor import RelationshipDescriptor
from .utils import join_query, split_query, upper_first


class Predicate:
    """
    Comparison expressions for a single query parameter.

    Usage:
        field("engine").equal_to("diesel")        # withEngine=diesel
        field("startedAt").between(2014, 2015)    # withStartedAt=2014/2015
        param("owner").equal_to("acme")           # owner=acme
    """

    def __init__(self, name: str, raw: bool = False):
        if raw:
            self.field = name
        else:
            self.field = f"with{upper_first(name)}"

    def equal_to(self, value: Any) -> str:
        return f"{self.field}={value}"

    def not_equal_to(self, value: Any) -> str:
        return f"{self.field}=!{value}"

    def one_or_more_of(self, *values: Any) -> str:
        return f"{self.field}={'||'.join(str(v) for v in values)}"

    def starts_with(self, value: Any) -> str:
        return f"{self.field}={value}*"

    def exists(self) -> str:
        return f"{self.field}=*"

    def not_exists(self) -> str:
        return f"{self.field}=!*"

    def between(self, start: Any, end: Any) -> str:
        return f"{self.field}={start}/{end}"

    def not_between(self, start: Any, end: Any) -> str:
        return f"{self.field}=!{start}/{end}"

    def less_than(self, value: Any) -> str:
        return f"{self.field}=!{value}/"

    def less_than_or_equal_to(self, value: Any) -> str:
        return f"{self.field}=/{value}"

    def greater_than(self, value: Any) -> str:
        return f"{self.field}=!/{value}"

    def greater_than_or_equal_to(self, value: Any) -> str:
        return f"{self.field}={value}/"


class Query:
    """
    Accumulates query fragments in call order.

    Usage:
        query = where(field("title").starts_with("Star")).include("assets").desc()
        query.order_by_name()
        query.to_query_string()
        # -> "withTitle=Star*&include=assets&sort=-name"
    """

    def __init__(self, query: Optional[str] = None):
        self.query = query or ""
        self.sort: Optional[str] = None
        self.sort_modifier = ""

    def and_(self, fragment: str) -> Query:
        """Append a fragment, usually the output of a Predicate."""
        self.query += f"&{fragment}"
        return self

    def count(self) -> Query:
        """Ask for `meta.totalCount` on the payload."""
        self.query += "&count=true"
        return self

    def continue_(self) -> Query:
        """Start continuation paging."""
        self.query += "&continue=true"
        return self

    def include(self, *includes: str) -> Query:
        """Linked resources to return alongside the results."""
        self.query += f"&include={','.join(includes)}"
        return self

    def fields(self, *names: str) -> Query:
        self.query += f"&fields={','.join(names)}"
        return self

    def lang(self, value: str) -> Query:
        self.query += f"&lang={value}"
        return self

    def per_page(self, value: Union[int, str]) -> Query:
        self.query += f"&perPage={value}"
        return self

    def page(self, value: Union[int, str]) -> Query:
        self.query += f"&page={value}"
        return self

    def asc(self) -> Query:
        self.sort_modifier = ""
        return self

    def desc(self) -> Query:
        self.sort_modifier = "-"
        return self

    def order_by(self, field_name: str) -> Query:
        """Sort on `field_name`; direction is set by asc()/desc()."""
        self.sort = field_name
        return self

    def order_by_owner(self) -> Query:
        return self.order_by("owner")

    def order_by_name(self) -> Query:
        return self.order_by("name")

    def order_by_created_at(self) -> Query:
        return self.order_by("createdAt")

    def order_by_created_by(self) -> Query:
        return self.order_by("createdBy")

    def order_by_updated_at(self) -> Query:
        return self.order_by("updatedAt")

    def order_by_updated_by(self) -> Query:
        return self.order_by("updatedBy")

    def add_related_through_fields(
        self,
        relationships: Optional[Mapping[str, Union[RelationshipDescriptor, dict]]] = None,
        all_fields: Optional[Iterable[str]] = None,
    ) -> Query:
        """
        Request the foreign-key fields that through relationships depend on.

        For every included relationship that declares a `through`, the
        `fieldNamePath` of the through relationship is added to `fields`.
        Without an explicit `fields` list, `all_fields` is used as the base so
        the response is not narrowed down to the through fields alone.

        Args:
            relationships: Relationship descriptors keyed by name
            all_fields: Every field name of the resource

        Returns:
            self. The query is left untouched when no through field applies;
            otherwise it is re-serialized as plain `key=value` pairs, with
            repeated keys kept in place and only `fields` replaced.
        """
        relationships = relationships or {}
        pairs = split_query(self.query)

        includes = [
            name
            for key, value in pairs if key == "include" and value
            for name in value.split(",")
        ]
        fields = [
            name
            for key, value in pairs if key == "fields" and value
            for name in value.split(",")
        ]

        through_fields: list[str] = []
        for include in includes:
            relationship = _relationship(relationships.get(include))
            if relationship is None or not relationship.through:
                continue
            through = _relationship(relationships.get(relationship.through))
            if through is not None and through.field_name_path:
                through_fields.append(through.field_name_path)

        if not through_fields:
            return self

        fields = list(fields or all_fields or [])
        for name in through_fields:
            if name not in fields:
                fields.append(name)
        fields_pair = ("fields", ",".join(fields))

        rewritten: list[tuple[str, str]] = []
        for key, value in pairs:
            if key != "fields":
                rewritten.append((key, value))
            elif fields_pair is not None:
                rewritten.append(fields_pair)
                fields_pair = None
        if fields_pair is not None:
            rewritten.append(fields_pair)

        self.query = join_query(rewritten)
        return self

    def to_query_string(self) -> str:
        """Render the accumulated fragments, with the sort fragment last."""
        query = self.query
        if self.sort:
            query += f"&sort={self.sort_modifier}{self.sort}"
        return query

    def __str__(self) -> str:
        return self.to_query_string()

    def __repr__(self) -> str:
        return f"Query({self.to_query_string()!r})"


def _relationship(
    value: Union[RelationshipDescriptor, dict, None],
) -> Optional[RelationshipDescriptor]:
    if value is None or isinstance(value, RelationshipDescriptor):
        return value
    return RelationshipDescriptor.model_validate(value)


def where(criteria: Optional[str] = None) -> Query:
    """Start a new Query, optionally from an initial fragment."""
    return Query(criteria)


def field(name: str) -> Predicate:
    """Predicate on a resource field, e.g. `title` -> `withTitle`."""
    return Predicate(name)


def param(name: str) -> Predicate:
    """Predicate on a raw query parameter, used verbatim."""
    return Predicate(name, raw=True)


def text_search(value: str) -> str:
    return f"q={value}"
