"""Payload serialization and the negative-result marker.

Values are stored as JSON text. A computation that produced nothing is stored
as ``NEGATIVE_MARKER``, which is not valid JSON and therefore can never be
confused with a serialized payload.
"""

from __future__ import annotations

import json
from collections.abc import Collection, Mapping
from functools import lru_cache
from typing import Any, TypeVar, cast

import pydantic_core
from pydantic import TypeAdapter

T = TypeVar("T")

NEGATIVE_MARKER = "!&*!{}"


def is_empty(value: object) -> bool:
    """Whether a computed value counts as "nothing" and gets the negative marker.

    ``None`` and empty sequences or sets are empty. Strings, bytes and
    mappings never are, so ``{}`` is cached as a real payload.
    """
    if value is None:
        return True
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    return isinstance(value, Collection) and len(value) == 0


def unwrap(raw: str | None) -> str | None:
    """Map the negative marker to ``None``, pass payloads through."""
    if raw is None or raw == NEGATIVE_MARKER:
        return None
    return raw


def dumps(value: Any) -> str:
    """Serialize a value to JSON text.

    Handles everything ``json`` does plus dataclasses, pydantic models,
    datetimes and UUIDs.
    """
    return pydantic_core.to_json(value).decode("utf-8")


@lru_cache(maxsize=256)
def _adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def loads(raw: str, type_: type[T] | Any = None) -> T:
    """Deserialize JSON text, validated into ``type_`` when given."""
    if type_ is None:
        return cast(T, json.loads(raw))
    return cast(T, _adapter(type_).validate_json(raw))


def loads_list(raw: str, item_type: type[T] | Any = None) -> list[T]:
    """Deserialize JSON text that must hold a list."""
    if item_type is None:
        value = json.loads(raw)
        if not isinstance(value, list):
            raise ValueError(f"Expected a JSON list, got {type(value).__name__}")
        return value
    return cast(list[T], _adapter(list[item_type]).validate_json(raw))  # type: ignore[valid-type]
