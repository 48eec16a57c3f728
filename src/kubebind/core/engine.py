#!/usr/bin/env python3
"""
KUBEBIND ENGINE - The Aggregator
--------------------------------
BindingEngine applies a set of Definitions to one source object and
merges their Values into the binding data. It also turns the outcome of
a resolution into a report carrying the Kubernetes status condition
the controller publishes on the owning resource.

Author: KubeBind Team
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Sequence

from kubebind.core.errors import BindingError
from kubebind.core.models import Value
from kubebind.resolution.definitions import Definition

logger = logging.getLogger("kubebind.engine")

CONDITION_TYPE = "CollectionReady"


def merge_values(values: Iterable[Value]) -> Dict[str, Any]:
    """
    Merges each Value's mapping in order. Later values overwrite keys
    produced by earlier ones; every collision is logged.
    """
    merged: Dict[str, Any] = {}
    for value in values:
        for key, item in value.get().items():
            if key in merged:
                logger.warning(f"Binding key '{key}' is overwritten by a later definition")
            merged[key] = item
    return merged


def build_condition(error: Optional[BindingError] = None) -> Dict[str, str]:
    """Status condition for a successful (no error) or failed resolution."""
    if error is None:
        return {
            "type": CONDITION_TYPE,
            "status": "True",
            "reason": "DataCollected",
            "message": "",
        }
    return {
        "type": CONDITION_TYPE,
        "status": "False",
        "reason": error.reason,
        "message": str(error),
    }


class BindingEngine:
    """
    Stateless between calls: the same engine can resolve many objects.
    With `max_workers > 1` definitions are applied on a thread pool;
    merging still follows definition order, so results are identical
    to the sequential run.
    """

    def __init__(self, max_workers: int = 1):
        try:
            self.max_workers = max(1, int(max_workers))
        except (ValueError, TypeError):
            logger.warning(f"Invalid max_workers '{max_workers}'. Falling back to default: 1")
            self.max_workers = 1

    def _apply(self, definition: Definition, obj: Any) -> Value:
        logger.debug(f"Applying {definition.describe()}")
        return definition.apply(obj)

    def collect(self, obj: Any, definitions: Sequence[Definition]) -> Dict[str, Any]:
        """
        Applies every definition and returns the merged binding data.
        The first failure aborts the batch and propagates unchanged.
        """
        if self.max_workers == 1 or len(definitions) < 2:
            values = [self._apply(d, obj) for d in definitions]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                # map() yields in submission order and re-raises the first failure
                values = list(pool.map(lambda d: self._apply(d, obj), definitions))
        return merge_values(values)

    def resolve(self, obj: Any, definitions: Sequence[Definition]) -> Dict[str, Any]:
        """
        Report-producing wrapper around collect(). A failed resolution
        never carries partial data.
        """
        try:
            data = self.collect(obj, definitions)
        except BindingError as e:
            logger.error(f"Binding resolution failed ({e.reason}): {e}")
            return {
                "status": "FAILED",
                "data": None,
                "error_kind": e.reason,
                "error": str(e),
                "condition": build_condition(e),
                "definitions": len(definitions),
                "timestamp": time.time(),
            }

        return {
            "status": "RESOLVED",
            "data": data,
            "error_kind": None,
            "error": None,
            "condition": build_condition(),
            "definitions": len(definitions),
            "timestamp": time.time(),
        }

    def generate_summary(self, reports: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Aggregates several resolution reports."""
        failures_by_kind: Dict[str, int] = {}
        for r in reports:
            if r.get("status") == "FAILED":
                kind = r.get("error_kind") or "Unknown"
                failures_by_kind[kind] = failures_by_kind.get(kind, 0) + 1

        resolved = sum(1 for r in reports if r.get("status") == "RESOLVED")
        return {
            "total": len(reports),
            "resolved": resolved,
            "failed": len(reports) - resolved,
            "failures_by_kind": failures_by_kind,
            "summary_timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        }
