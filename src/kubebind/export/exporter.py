#!/usr/bin/env python3
"""
KUBEBIND EXPORTER - Binding Secret Renderer
-------------------------------------------
Flattens the aggregated binding data into Secret-compatible keys and
renders the binding Secret manifest as YAML.

Author: KubeBind Team
"""

import base64
import io
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from kubebind.core.models import stringify

logger = logging.getLogger("kubebind.exporter")


def flatten_binding(data: Mapping, separator: str = "_", prefix: str = "") -> Dict[str, Any]:
    """
    Nested maps join their keys with `separator` (bootstrap_http),
    sequence items use their index (bootstrap_0). Leaves keep their
    type; bytes stay bytes so binary Secret data survives. A key that
    collides with one already flattened wins and the overwrite is logged.
    """
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}{separator}{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            nested = flatten_binding(value, separator, name)
        elif isinstance(value, (list, tuple)):
            indexed = {str(i): item for i, item in enumerate(value)}
            nested = flatten_binding(indexed, separator, name)
        else:
            nested = {name: value}
        for flat_name, flat_value in nested.items():
            if flat_name in flat:
                logger.warning(f"Flattened key '{flat_name}' overwrites an existing binding key")
            flat[flat_name] = flat_value
    return flat


def encode_value(value: Any) -> str:
    raw = value if isinstance(value, bytes) else stringify(value).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


class BindingSecretExporter:
    """
    The Reconstructor: builds the binding Secret and dumps it with
    ruamel round-trip output in the canonical Kubernetes key order.
    """

    def __init__(self, separator: str = "_"):
        self.separator = separator
        self.yaml = YAML(typ='rt')
        self.yaml.indent(mapping=2, sequence=4, offset=2)
        self.yaml.width = 4096
        self.preferred_order = ["apiVersion", "kind", "metadata", "type", "data"]

    def build(self, name: str, namespace: Optional[str], data: Mapping) -> CommentedMap:
        metadata = CommentedMap()
        metadata["name"] = name
        if namespace:
            metadata["namespace"] = namespace

        flat = flatten_binding(data, self.separator)
        encoded = CommentedMap()
        for key in sorted(flat):
            encoded[key] = encode_value(flat[key])

        manifest = CommentedMap()
        manifest["apiVersion"] = "v1"
        manifest["kind"] = "Secret"
        manifest["metadata"] = metadata
        manifest["type"] = "Opaque"
        manifest["data"] = encoded
        return manifest

    def _get_sorted_map(self, data: Mapping) -> CommentedMap:
        keys = list(data.keys())

        def sort_logic(key):
            if key in self.preferred_order:
                return self.preferred_order.index(key)
            # Unknown keys keep their relative original position
            return len(self.preferred_order) + keys.index(key)

        ordered = CommentedMap()
        for key in sorted(keys, key=sort_logic):
            ordered[key] = data[key]
        return ordered

    def export(self, manifest: Mapping) -> str:
        stream = io.StringIO()
        self.yaml.dump(self._get_sorted_map(manifest), stream)
        return stream.getvalue()
