#!/usr/bin/env python3
"""
KUBEBIND SCANNER - Path Token Parser
------------------------------------
Turns the body of one `{...}` token into a list of traversal steps.
Only the dotted/bracketed field-access subset of JSONPath is accepted:

    .status.dbCredentials.username
    .metadata.annotations['app.kubernetes.io/name']
    .status.endpoints[0].url

Wildcards, filters, slices and recursive descent are rejected.

Author: KubeBind Team
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Union

from kubebind.core.errors import InvalidPath


@dataclass(frozen=True)
class PathStep:
    """One hop through the object tree: a mapping key or a sequence index."""
    key: Union[str, int]

    @property
    def is_index(self) -> bool:
        return isinstance(self.key, int)

    def render(self) -> str:
        if self.is_index:
            return f"[{self.key}]"
        if re.fullmatch(r"[\w\-/]+", self.key):
            return f".{self.key}"
        return f"['{self.key}']"


class PathScanner:
    """
    Regex-driven step extraction. Each pattern is anchored at the
    current position; anything none of them matches is a syntax error.
    """

    FIELD_PATTERN = re.compile(r"\.([^.\[\]{}'\"\s*?@(),]+)")
    QUOTED_PATTERN = re.compile(r"\[\s*(?:'([^']*)'|\"([^\"]*)\")\s*\]")
    INDEX_PATTERN = re.compile(r"\[\s*(-?\d+)\s*\]")

    def scan(self, body: str) -> List[PathStep]:
        """
        Parses a token body. An empty step list addresses the root.
        """
        text = body.strip()
        if text.startswith('$'):
            text = text[1:]
        if text in ("", "."):
            return []
        if text[0] not in ".[":
            raise InvalidPath(body, "path must start with '.' or '['")

        steps = []
        pos = 0
        while pos < len(text):
            step, pos = self._next_step(body, text, pos)
            steps.append(step)
        return steps

    def _next_step(self, body: str, text: str, pos: int):
        match = self.FIELD_PATTERN.match(text, pos)
        if match:
            return PathStep(match.group(1)), match.end()

        match = self.QUOTED_PATTERN.match(text, pos)
        if match:
            key = match.group(1) if match.group(1) is not None else match.group(2)
            return PathStep(key), match.end()

        match = self.INDEX_PATTERN.match(text, pos)
        if match:
            return PathStep(int(match.group(1))), match.end()

        raise InvalidPath(body, f"unsupported expression at '{text[pos:]}'")


def render_steps(steps: List[PathStep], limit: Optional[int] = None) -> str:
    """Canonical text of the first `limit` steps, for error messages."""
    chosen = steps if limit is None else steps[:limit]
    return "".join(step.render() for step in chosen) or "."
