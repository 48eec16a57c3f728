#!/usr/bin/env python3
"""
KUBEBIND LEXER - Template Sharder
---------------------------------
Decomposes a binding template such as `foo-{.status.name}` into an
ordered list of Segments: literal text and `{...}` path tokens.
Quote-aware, so a bracketed key like `['a}b']` stays inside its token.

Author: KubeBind Team
"""

from dataclasses import dataclass
from typing import List

from kubebind.core.errors import InvalidPath


@dataclass(frozen=True)
class Segment:
    """
    The atomic unit of a template.
    """
    text: str               # Literal text, or the token body without braces
    is_token: bool = False  # True for a `{...}` path token


class TemplateLexer:
    """
    Splits templates at `{` / `}` boundaries. Stateless between calls,
    so one instance can be shared by concurrent evaluations.
    """

    def _find_token_end(self, template: str, start: int) -> int:
        """Index of the `}` closing the token opened just before `start`."""
        in_double_quote = in_single_quote = escaped = False
        for i in range(start, len(template)):
            char = template[i]
            if escaped:
                escaped = False
                continue
            if char == '\\':
                escaped = True
                continue
            if char == '"' and not in_single_quote:
                in_double_quote = not in_double_quote
            elif char == "'" and not in_double_quote:
                in_single_quote = not in_single_quote
            elif not in_double_quote and not in_single_quote:
                if char == '{':
                    raise InvalidPath(template, f"nested '{{' at offset {i}")
                if char == '}':
                    return i
        raise InvalidPath(template, f"unterminated '{{' at offset {start - 1}")

    def shard(self, template: str) -> List[Segment]:
        """
        Primary interface: template text in, ordered Segments out.
        Empty literal runs are dropped; an empty template yields no segments.
        A `}` outside a token is ordinary literal text.
        """
        segments = []
        literal_start = 0
        i = 0

        while i < len(template):
            if template[i] != "{":
                i += 1
                continue

            if i > literal_start:
                segments.append(Segment(template[literal_start:i]))

            end = self._find_token_end(template, i + 1)
            body = template[i + 1:end].strip()
            if not body:
                raise InvalidPath(template, f"empty path token at offset {i}")
            segments.append(Segment(body, is_token=True))

            i = end + 1
            literal_start = i

        if literal_start < len(template):
            segments.append(Segment(template[literal_start:]))

        return segments

    def is_single_token(self, segments: List[Segment]) -> bool:
        """True when the template is exactly one bare token."""
        return len(segments) == 1 and segments[0].is_token
