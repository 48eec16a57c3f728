#!/usr/bin/env python3
"""
KUBEBIND PATH EVALUATOR
-----------------------
Evaluates a template against a structured object (a decoded custom
resource, a Secret, ...).

A template that is exactly one bare token returns the raw value found
at the path with its native type preserved, which is what allows whole
subtrees and lists to be extracted. Any other template is rendered to a
single string: every token is coerced to text and spliced between the
literal segments in source order.

Author: KubeBind Team
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Tuple

from kubebind.core.errors import PathNotFound, TypeMismatch
from kubebind.core.models import shape_of, stringify
from kubebind.resolution.lexer import Segment, TemplateLexer
from kubebind.resolution.scanner import PathScanner, PathStep, render_steps

logger = logging.getLogger("kubebind.evaluator")

ParsedTemplate = List[Tuple[Segment, List[PathStep]]]


class PathEvaluator:
    """
    Lexes, scans and walks templates. Holds no per-call state and never
    mutates the objects it reads.
    """

    def __init__(self):
        self.lexer = TemplateLexer()
        self.scanner = PathScanner()

    def parse(self, template: str) -> ParsedTemplate:
        """
        Validates the full template syntax without touching any data.
        Raises InvalidPath on the first malformed token.
        """
        parsed = []
        for segment in self.lexer.shard(template):
            steps = self.scanner.scan(segment.text) if segment.is_token else []
            parsed.append((segment, steps))
        return parsed

    def evaluate(self, template: str, obj: Any) -> Any:
        """Resolves `template` against `obj` (see module docstring)."""
        parsed = self.parse(template)

        if self.lexer.is_single_token([segment for segment, _ in parsed]):
            segment, steps = parsed[0]
            return self.walk(obj, steps, segment.text)

        parts = []
        for segment, steps in parsed:
            if segment.is_token:
                parts.append(stringify(self.walk(obj, steps, segment.text), segment.text))
            else:
                parts.append(segment.text)
        return "".join(parts)

    def evaluate_string(self, template: str, obj: Any) -> str:
        """Same as evaluate() but always yields text."""
        return stringify(self.evaluate(template, obj), template)

    def walk(self, obj: Any, steps: List[PathStep], path: str) -> Any:
        """
        Follows `steps` from `obj`. Missing keys and out-of-range indices
        raise PathNotFound, as does a name step through null; stepping into
        the wrong shape raises TypeMismatch.
        """
        current = obj
        for depth, step in enumerate(steps):
            if step.is_index:
                if not isinstance(current, (list, tuple)):
                    raise TypeMismatch(render_steps(steps, depth) if depth else path,
                                       "list", shape_of(current))
                if not -len(current) <= step.key < len(current):
                    raise PathNotFound(path, render_steps(steps, depth + 1))
                current = current[step.key]
            else:
                if current is None:
                    raise PathNotFound(path, render_steps(steps, depth + 1))
                if not isinstance(current, Mapping):
                    raise TypeMismatch(render_steps(steps, depth) if depth else path,
                                       "map", shape_of(current))
                if step.key not in current:
                    raise PathNotFound(path, render_steps(steps, depth + 1))
                current = current[step.key]

        logger.debug(f"Resolved '{path}' to a {shape_of(current)}")
        return current
