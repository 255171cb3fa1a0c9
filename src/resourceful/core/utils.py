"""
Utility functions for resourceful.

Includes:
- Case conversion (camelCase <-> snake_case, hyphenated)
- Query-string splitting used by pagination links
"""

from __future__ import annotations

import re


# =============================================================================
# Case conversion utilities
# =============================================================================

_CAMEL_TO_SNAKE_PATTERN = re.compile(r'(?<!^)(?=[A-Z])')
_SNAKE_TO_CAMEL_PATTERN = re.compile(r'_([a-z])')


def to_snake_case(name: str) -> str:
    """
    Convert camelCase to snake_case.

    Examples:
        pluralName -> plural_name
        fieldNamePath -> field_name_path
        HTTPResponse -> http_response
    """
    # Handle consecutive uppercase (HTTP -> http)
    result = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    result = _CAMEL_TO_SNAKE_PATTERN.sub('_', result)
    return result.lower()


def to_camel_case(name: str) -> str:
    """
    Convert snake_case to camelCase.

    Examples:
        plural_name -> pluralName
        field_name_path -> fieldNamePath
    """
    def replace_underscore(match):
        return match.group(1).upper()

    return _SNAKE_TO_CAMEL_PATTERN.sub(replace_underscore, name)


def upper_first(name: str) -> str:
    """
    Upper-case the first character only, leaving the rest untouched.

    Examples:
        startedAt -> StartedAt
        title -> Title
    """
    return name[:1].upper() + name[1:]


def to_hyphenated(name: str) -> str:
    """
    Convert camelCase to the hyphenated form used in URL segments.

    Examples:
        contentSegments -> content-segments
    """
    return to_snake_case(name).replace('_', '-')


# =============================================================================
# Query-string utilities
# =============================================================================

_PATH_PREFIX_PATTERN = re.compile(r'^.+\?')
_OWNER_PARAM_PATTERN = re.compile(r'&?owner=[^&]+')


def strip_location(criteria: str) -> str:
    """
    Strip the path prefix and the owner parameter from a continuation URL.

    Example:
        https://host/data/contents?owner=acme&page=2 -> page=2
    """
    criteria = _PATH_PREFIX_PATTERN.sub('', criteria, count=1)
    criteria = _OWNER_PARAM_PATTERN.sub('', criteria, count=1)
    return criteria.lstrip('&')


def split_query(query: str) -> list[tuple[str, str]]:
    """
    Split a raw query string into ordered key/value pairs.

    Every pair is kept in order, so repeated keys (several predicates on one
    field, repeated `include`) survive a split and join. Empty segments are
    dropped. Values are not decoded.
    """
    pairs: list[tuple[str, str]] = []
    for segment in query.lstrip('?').split('&'):
        if not segment:
            continue
        key, _, value = segment.partition('=')
        if not key:
            continue
        pairs.append((key, value))
    return pairs


def join_query(pairs: list[tuple[str, str]]) -> str:
    """Join key/value pairs back into an unencoded query string."""
    return '&'.join(f'{key}={value}' for key, value in pairs)
