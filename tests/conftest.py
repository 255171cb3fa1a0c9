"""
Shared fixtures: descriptors for a small metadata service and a recording
fake transport.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Optional

import pytest

from resourceful import ResourcefulEndpoint

LOCATION = "http://localhost/metadata"
TENANT = "test"


CONTENTS = {
    "pluralName": "contents",
    "singularName": "content",
    "hyphenatedPluralName": "contents",
    "serviceName": "metadata",
    "path": "/data",
    "fields": {
        "ref": {"type": "string", "readOnly": True},
        "owner": {"type": "string", "required": True},
        "name": {"type": "string", "required": True, "typeInfo": {"pattern": "^[a-z0-9-]+$"}},
        "title": {"type": "string"},
        "type": {"type": "string", "allowedValueMappings": {"Movie": "movie", "Episode": "episode"}},
        "duration": {"type": "string", "default": "PT0M"},
        "createdAt": {"type": "dateTime", "readOnly": True, "typeInfo": {"pattern": "^\\d{4}-"}},
        "categoryRefs": {"type": "array"},
        "personRefs": {"type": "array"},
        "providerRef": {"type": "string"},
        "localisedTitle": {
            "type": "map",
            "typeInfo": {
                "keys": {"pattern": "^[a-z]{2}$"},
                "values": {"en": {"values": ["Hello", "Hi"]}},
            },
        },
    },
    "relationships": {
        "categories": {
            "type": "direct",
            "resourceType": "categories",
            "fieldNamePath": "categoryRefs",
        },
        "provider": {
            "type": "direct",
            "resourceType": "providers",
            "fieldNamePath": "providerRef",
        },
        "people": {
            "type": "direct",
            "resourceType": "people",
            "fieldNamePath": "personRefs",
        },
        "assets": {
            "type": "indirect",
            "resourceType": "assets",
            "filterName": "withContentRef",
        },
        "credits": {
            "type": "indirect",
            "resourceType": "credits",
            "filterName": "withPersonRef",
            "through": "people",
        },
    },
    "filters": {
        "withContentRef": {"fieldNamePath": "contentRef"},
        "withPersonRef": {"fieldNamePath": "personRef"},
    },
    "operations": {"storeBatch": {"limit": 2}},
}

ASSETS = {
    "pluralName": "assets",
    "singularName": "asset",
    "hyphenatedPluralName": "assets",
    "fields": {
        "ref": {"type": "string"},
        "owner": {"type": "string"},
        "name": {"type": "string"},
        "contentRef": {"type": "string"},
        "type": {"type": "string"},
    },
    "relationships": {
        "content": {
            "type": "direct",
            "resourceType": "contents",
            "fieldNamePath": "contentRef",
        },
    },
}

CATEGORIES = {
    "pluralName": "categories",
    "singularName": "category",
    "hyphenatedPluralName": "categories",
    "fields": {
        "ref": {"type": "string"},
        "owner": {"type": "string"},
        "name": {"type": "string"},
    },
}

PROVIDERS = {
    "pluralName": "providers",
    "singularName": "provider",
    "fields": {
        "ref": {"type": "string"},
        "name": {"type": "string"},
    },
}


class FakeTransport:
    """
    Records every call and answers through `handler(method, url, json)`.

    A handler result that is an exception instance is raised instead.
    """

    def __init__(self, handler: Optional[Callable[[str, str, Any], Any]] = None):
        self.calls: list[tuple[str, str, Any]] = []
        self.closed = False
        self.handler = handler or (lambda method, url, json: {})

    async def _call(self, method: str, url: str, json: Any = None) -> Any:
        self.calls.append((method, url, json))
        result = self.handler(method, url, json)
        if isinstance(result, Exception):
            raise result
        return result

    async def get(self, url: str, **options: Any) -> Any:
        return await self._call("GET", url)

    async def post(self, url: str, json: Any = None, **options: Any) -> Any:
        return await self._call("POST", url, json)

    async def put(self, url: str, json: Any = None, **options: Any) -> Any:
        return await self._call("PUT", url, json)

    async def destroy(self, url: str, **options: Any) -> Any:
        return await self._call("DELETE", url)

    async def close(self):
        self.closed = True

    def urls(self, method: Optional[str] = None) -> list[str]:
        return [url for m, url, _ in self.calls if method is None or m == method]


def make_endpoint(descriptor: dict, transport: Any = None) -> ResourcefulEndpoint:
    data = {**copy.deepcopy(descriptor), "location": LOCATION, "tenant": TENANT}
    return ResourcefulEndpoint(transport or FakeTransport(), data)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def contents(transport) -> ResourcefulEndpoint:
    return make_endpoint(CONTENTS, transport)


@pytest.fixture
def assets(transport) -> ResourcefulEndpoint:
    return make_endpoint(ASSETS, transport)


@pytest.fixture
def categories(transport) -> ResourcefulEndpoint:
    return make_endpoint(CATEGORIES, transport)


@pytest.fixture
def providers(transport) -> ResourcefulEndpoint:
    return make_endpoint(PROVIDERS, transport)
