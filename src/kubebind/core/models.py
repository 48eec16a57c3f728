#!/usr/bin/env python3
"""
KUBEBIND CORE MODELS
--------------------
Defines the fundamental data structures shared across the engine:
the resolved Value, the external store reference and the shape helpers
used to inspect loosely-typed resource trees.

Author: KubeBind Team
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from kubebind.core.errors import TypeMismatch


class ObjectType(str, Enum):
    """Kinds of store object a definition may dereference."""

    SECRET = "Secret"
    CONFIG_MAP = "ConfigMap"

    @classmethod
    def parse(cls, raw: str) -> "ObjectType":
        for member in cls:
            if member.value.lower() == str(raw).strip().lower():
                return member
        raise ValueError(f"unknown object type '{raw}' (expected Secret or ConfigMap)")


@dataclass(frozen=True)
class StoreRef:
    """
    Points at one Secret or ConfigMap in a single namespace.
    """
    kind: ObjectType
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.kind.value}/{self.namespace}/{self.name}"


@dataclass(frozen=True)
class Value:
    """
    The result of applying a Definition.

    `get()` always yields a mapping so that values from several
    definitions can be merged uniformly into the binding data.
    """
    payload: Any
    output_name: str = ""

    def __post_init__(self):
        if not self.output_name and not isinstance(self.payload, Mapping):
            raise ValueError(
                "a value without an output name must carry a mapping payload, "
                f"got {shape_of(self.payload)}"
            )

    def get(self) -> Dict[str, Any]:
        if self.output_name:
            return {self.output_name: self.payload}
        return dict(self.payload)


def shape_of(value: Any) -> str:
    """Human-readable shape name used in TypeMismatch messages."""
    if value is None:
        return "null"
    if isinstance(value, Mapping):
        return "map"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (str, bytes)):
        return "string"
    return type(value).__name__


def as_mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeMismatch(path, "map", shape_of(value))
    return value


def as_sequence(value: Any, path: str) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        raise TypeMismatch(path, "list", shape_of(value))
    return list(value)


def stringify(value: Any, path: Optional[str] = None) -> str:
    """
    Coerces a resolved value into the text spliced into a template.
    Mappings and sequences render as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            raise TypeMismatch(path or "", "string", "binary data")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)
