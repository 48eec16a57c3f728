#!/usr/bin/env python3
"""
KUBEBIND DEFINITIONS - The Resolution Variants
----------------------------------------------
A Definition is immutable configuration describing one resolution
task. `apply(obj)` reads the source object (and, for the data-field
variant, one external Secret/ConfigMap) and returns a fresh Value.

The variant set is closed; DEFINITION_TYPES maps each configuration
tag to its class.

Author: KubeBind Team
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

from kubebind.core.errors import InvalidDefinition, MissingKey, TypeMismatch
from kubebind.core.models import ObjectType, Value, as_mapping, as_sequence, shape_of, stringify
from kubebind.readers.store import StoreReader
from kubebind.resolution.evaluator import PathEvaluator

logger = logging.getLogger("kubebind.definitions")

_evaluator = PathEvaluator()


@dataclass(frozen=True)
class Definition:
    """Shared fields of every variant."""

    type_tag: ClassVar[str] = ""

    path: str = ""
    output_name: str = ""

    def apply(self, obj: Any) -> Value:
        raise NotImplementedError

    def describe(self) -> str:
        target = self.output_name or "<flattened>"
        return f"{self.type_tag}({self.path or '-'} -> {target})"

    def _require(self, attr: str):
        if not getattr(self, attr):
            raise InvalidDefinition(f"{self.type_tag} requires '{attr}'")


@dataclass(frozen=True)
class StringDefinition(Definition):
    """
    A single string under `output_name`: either the literal `value`
    or the rendered `path` template.
    """

    type_tag: ClassVar[str] = "string"

    value: Optional[str] = None

    def __post_init__(self):
        self._require("output_name")
        if self.value is None and not self.path:
            raise InvalidDefinition("string requires either 'path' or 'value'")

    def apply(self, obj: Any) -> Value:
        if self.value is not None:
            return Value(self.value, self.output_name)
        return Value(_evaluator.evaluate_string(self.path, obj), self.output_name)


@dataclass(frozen=True)
class StringOfMapDefinition(Definition):
    """
    A map-shaped subtree, nested under `output_name` or merged flat
    into the binding when no output name is given.
    """

    type_tag: ClassVar[str] = "stringOfMap"

    def __post_init__(self):
        self._require("path")

    def apply(self, obj: Any) -> Value:
        resolved = as_mapping(_evaluator.evaluate(self.path, obj), self.path)
        return Value(copy.deepcopy(dict(resolved)), self.output_name)


def _element_field(element: Any, key: str, path: str, index: int) -> str:
    item_path = f"{path}[{index}]"
    mapping = as_mapping(element, item_path)
    if key not in mapping:
        raise MissingKey(key, item_path)
    found = mapping[key]
    if isinstance(found, (dict, list, tuple)):
        raise TypeMismatch(f"{item_path}.{key}", "string", shape_of(found))
    return stringify(found, f"{item_path}.{key}")


@dataclass(frozen=True)
class SliceOfStringsFromPathDefinition(Definition):
    """
    Picks `source_value` out of every element of a list of maps,
    keeping element order.
    """

    type_tag: ClassVar[str] = "sliceOfStrings"

    source_value: str = ""

    def __post_init__(self):
        for attr in ("path", "source_value", "output_name"):
            self._require(attr)

    def apply(self, obj: Any) -> Value:
        elements = as_sequence(_evaluator.evaluate(self.path, obj), self.path)
        values = [
            _element_field(element, self.source_value, self.path, i)
            for i, element in enumerate(elements)
        ]
        return Value(values, self.output_name)


@dataclass(frozen=True)
class SliceOfMapsFromPathDefinition(Definition):
    """
    Converts a list of maps into one key -> value map using two fields
    of each element. Repeated keys are last-write-wins.
    """

    type_tag: ClassVar[str] = "sliceOfMaps"

    source_key: str = ""
    source_value: str = ""

    def __post_init__(self):
        for attr in ("path", "source_key", "source_value", "output_name"):
            self._require(attr)

    def apply(self, obj: Any) -> Value:
        elements = as_sequence(_evaluator.evaluate(self.path, obj), self.path)
        result: Dict[str, str] = {}
        for i, element in enumerate(elements):
            key = _element_field(element, self.source_key, self.path, i)
            result[key] = _element_field(element, self.source_value, self.path, i)
        return Value(result, self.output_name)


@dataclass(frozen=True)
class MapFromDataFieldDefinition(Definition):
    """
    The indirection variant: `path` renders the name of a Secret or
    ConfigMap living in the source object's namespace, whose data fields
    become the payload. With `source_value` only that one key is kept,
    labelled `output_name` (or the key itself).
    """

    type_tag: ClassVar[str] = "mapFromDataField"

    object_type: ObjectType = ObjectType.SECRET
    source_value: str = ""
    reader: Optional[StoreReader] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        self._require("path")
        if self.reader is None:
            raise InvalidDefinition("mapFromDataField requires a store reader")

    def apply(self, obj: Any) -> Value:
        name = _evaluator.evaluate(self.path, obj)
        if not isinstance(name, str):
            raise TypeMismatch(self.path, "string", shape_of(name))
        namespace = _evaluator.evaluate("{.metadata.namespace}", obj)
        if not isinstance(namespace, str) or not namespace:
            raise TypeMismatch(".metadata.namespace", "string", shape_of(namespace))

        data = self.reader.read(self.object_type, namespace, name)
        logger.debug(f"Fetched {len(data)} key(s) from {self.object_type.value} '{namespace}/{name}'")

        if self.source_value:
            if self.source_value not in data:
                raise MissingKey(self.source_value, f"{self.object_type.value}/{namespace}/{name}")
            return Value(data[self.source_value], self.output_name or self.source_value)
        return Value(data, self.output_name)


DEFINITION_TYPES: Dict[str, type] = {
    cls.type_tag: cls
    for cls in (
        StringDefinition,
        StringOfMapDefinition,
        SliceOfStringsFromPathDefinition,
        SliceOfMapsFromPathDefinition,
        MapFromDataFieldDefinition,
    )
}
