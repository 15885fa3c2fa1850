"""Dotted-path lookups into result metadata."""

from __future__ import annotations

from typing import Any


_MISSING = object()


def _step(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment, _MISSING)
    if isinstance(node, (list, tuple)):
        try:
            index = int(segment)
        except ValueError:
            return _MISSING
        if -len(node) <= index < len(node):
            return node[index]
    return _MISSING


def lookup(tree: Any, key: str, fallback: Any = None) -> Any:
    """Follow a dotted key through nested dicts and lists.

    Integer segments index into lists (``"runs.0.duration"``). A value that
    is present but ``None`` is returned as-is; only a missing segment
    yields the fallback.

    Args:
        tree: Nested metadata value.
        key: Dotted path, e.g. ``"coverage.lines"``.
        fallback: Value returned when the path does not resolve.

    Returns:
        The value found at the path, or ``fallback``.
    """
    node = tree
    for segment in key.split("."):
        node = _step(node, segment)
        if node is _MISSING:
            return fallback
    return node
