#!/usr/bin/env python3
"""
KUBEBIND ERRORS
---------------
The failure taxonomy of the resolution engine. Every error carries a
stable `reason` string, which the engine reuses verbatim as the reason
of the status condition reported on the owning resource.

Author: KubeBind Team
"""

from typing import Optional


class BindingError(Exception):
    """Base class for every resolution failure."""

    reason = "BindingError"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class InvalidPath(BindingError):
    """The template or one of its path tokens cannot be parsed."""

    reason = "InvalidPath"

    def __init__(self, path: str, detail: str):
        super().__init__(f"invalid path '{path}': {detail}", path=path)
        self.detail = detail


class PathNotFound(BindingError):
    """The path is well-formed but addresses nothing in the object."""

    reason = "PathNotFound"

    def __init__(self, path: str, missing: Optional[str] = None):
        message = f"path '{path}' not found"
        if missing:
            message += f" (no '{missing}')"
        super().__init__(message, path=path)
        self.missing = missing


class TypeMismatch(BindingError):
    """A value exists at the path but has the wrong shape."""

    reason = "TypeMismatch"

    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(
            f"value at '{path}' must be a {expected}, found {actual}", path=path
        )
        self.expected = expected
        self.actual = actual


class MissingKey(BindingError):
    """A required key is absent from an extracted element or data map."""

    reason = "MissingKey"

    def __init__(self, key: str, path: Optional[str] = None):
        where = f" at '{path}'" if path else ""
        super().__init__(f"required key '{key}' is missing{where}", path=path)
        self.key = key


class ExternalResourceError(BindingError):
    reason = "ExternalResourceError"

    def __init__(self, kind: str, namespace: str, name: str, detail: str):
        super().__init__(f"{kind} '{namespace}/{name}': {detail}")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ExternalResourceNotFound(ExternalResourceError):
    reason = "ExternalResourceNotFound"

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(kind, namespace, name, "not found")


class ExternalResourceUnreadable(ExternalResourceError):
    reason = "ExternalResourceUnreadable"


class InvalidDefinition(BindingError):
    """A definition entry in the configuration is malformed."""

    reason = "InvalidDefinition"

    def __init__(self, detail: str, index: Optional[int] = None):
        prefix = f"definition #{index}: " if index is not None else ""
        super().__init__(prefix + detail)
        self.index = index
