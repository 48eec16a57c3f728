#!/usr/bin/env python3
"""
KUBEBIND DEFINITION LOADER - The Gatekeeper
-------------------------------------------
Validates definition entries (decoded YAML/JSON mappings) and builds
the matching Definition objects. Malformed entries are rejected before
any resolution starts, with the offending entry index in the message.

Author: KubeBind Team
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ruamel.yaml import YAML, YAMLError

from kubebind.core.errors import InvalidDefinition
from kubebind.core.models import ObjectType
from kubebind.readers.store import StoreReader
from kubebind.resolution.definitions import DEFINITION_TYPES, Definition, MapFromDataFieldDefinition
from kubebind.resolution.evaluator import PathEvaluator

logger = logging.getLogger("kubebind.config")

# Configuration key -> dataclass attribute
FIELD_NAMES = {
    "path": "path",
    "outputName": "output_name",
    "value": "value",
    "sourceKey": "source_key",
    "sourceValue": "source_value",
    "objectType": "object_type",
}

REQUIRED_FIELDS = {
    "string": ["outputName"],
    "stringOfMap": ["path"],
    "sliceOfStrings": ["path", "sourceValue", "outputName"],
    "sliceOfMaps": ["path", "sourceKey", "sourceValue", "outputName"],
    "mapFromDataField": ["path", "objectType"],
}

ALLOWED_FIELDS = {
    "string": {"path", "outputName", "value"},
    "stringOfMap": {"path", "outputName"},
    "sliceOfStrings": {"path", "outputName", "sourceValue"},
    "sliceOfMaps": {"path", "outputName", "sourceKey", "sourceValue"},
    "mapFromDataField": {"path", "outputName", "sourceValue", "objectType"},
}


class DefinitionLoader:
    """
    Builds Definitions from configuration. A store reader is only needed
    when the configuration contains `mapFromDataField` entries.
    """

    def __init__(self, reader: Optional[StoreReader] = None):
        self.reader = reader
        self.evaluator = PathEvaluator()
        self.yaml = YAML(typ="safe")

    def build(self, entry: Mapping[str, Any], index: Optional[int] = None) -> Definition:
        """Validates one entry and returns its Definition."""
        if not isinstance(entry, Mapping):
            raise InvalidDefinition("entry must be a mapping", index)

        type_tag = entry.get("type")
        if not isinstance(type_tag, str) or type_tag not in DEFINITION_TYPES:
            known = ", ".join(sorted(DEFINITION_TYPES))
            raise InvalidDefinition(f"unknown type '{type_tag}' (expected one of: {known})", index)

        fields = {k: v for k, v in entry.items() if k != "type"}
        unknown = set(fields) - ALLOWED_FIELDS[type_tag]
        if unknown:
            raise InvalidDefinition(
                f"{type_tag} does not accept: {', '.join(sorted(unknown))}", index
            )
        for name in REQUIRED_FIELDS[type_tag]:
            if fields.get(name) in (None, ""):
                raise InvalidDefinition(f"{type_tag} requires '{name}'", index)

        kwargs: Dict[str, Any] = {}
        for name, raw in fields.items():
            if raw is None:
                continue
            if not isinstance(raw, str):
                raise InvalidDefinition(f"'{name}' must be a string, got {type(raw).__name__}", index)
            kwargs[FIELD_NAMES[name]] = raw

        if "object_type" in kwargs:
            try:
                kwargs["object_type"] = ObjectType.parse(kwargs["object_type"])
            except ValueError as e:
                raise InvalidDefinition(str(e), index)

        if "path" in kwargs:
            # Fail on malformed templates now rather than at apply time
            self.evaluator.parse(kwargs["path"])

        cls = DEFINITION_TYPES[type_tag]
        if cls is MapFromDataFieldDefinition:
            if self.reader is None:
                raise InvalidDefinition("mapFromDataField needs a store reader to be configured", index)
            kwargs["reader"] = self.reader

        try:
            return cls(**kwargs)
        except InvalidDefinition as e:
            raise InvalidDefinition(str(e), index)

    def build_all(self, document: Any) -> List[Definition]:
        """
        Accepts either a list of entries or a mapping with a
        `definitions` list.
        """
        if isinstance(document, Mapping):
            document = document.get("definitions")
        if not isinstance(document, list):
            raise InvalidDefinition("expected a list of definitions or a 'definitions' key")

        definitions = [self.build(entry, index) for index, entry in enumerate(document)]
        logger.debug(f"Loaded {len(definitions)} definition(s)")
        return definitions

    def load(self, source: Union[str, Path]) -> List[Definition]:
        """Reads a YAML (or JSON) definitions file."""
        path = Path(source)
        try:
            document = self.yaml.load(path.read_text(encoding="utf-8-sig"))
        except (OSError, YAMLError) as e:
            logger.error(f"Unable to read definitions from {path}")
            raise InvalidDefinition(f"cannot load {path}: {e}")
        return self.build_all(document)
