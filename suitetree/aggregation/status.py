"""Status aggregation for suites, tests and run containers.

Computes a single overarching status from the statuses of a node's
children. Plain nodes use the ten-status model; the top-level run
container adds ``refreshing`` and ``error``.
"""

from __future__ import annotations

from typing import Iterable

from suitetree.errors import UnknownStatusError


# Valid status values for suites and tests
STATUSES = frozenset({
    "queued",
    "running",
    "passed",
    "failed",
    "incomplete",
    "skipped",
    "warning",
    "partial",
    "empty",
    "idle",
})

# Extra status values only a run container can take
FRAMEWORK_STATUSES = STATUSES | {"refreshing", "error"}

# Statuses that win over any mix of others, in precedence order
_DOMINANT = ("failed", "warning", "incomplete")
_FRAMEWORK_DOMINANT = ("running", "error", "refreshing")


def _check(components: list[str], valid: frozenset[str]) -> None:
    unknown = sorted({c for c in components if c not in valid})
    if unknown:
        raise UnknownStatusError(
            f"Unknown status {unknown}. Must be one of: {sorted(valid)}"
        )


def _unique(components: Iterable[str]) -> list[str]:
    """Deduplicate while keeping first-seen order."""
    return list(dict.fromkeys(components))


def parse_status(components: Iterable[str]) -> str:
    """Compute an overarching status from a set of child statuses.

    Empty children have no effect on the total: a mix of idle children
    with the occasional empty one is idle, not partial. A mix of queued
    and settled children is reported as running, since it is transient
    and will resolve once the queued children run or the run stops.

    Args:
        components: Child statuses, in any order, duplicates allowed.

    Returns:
        The aggregated status.

    Raises:
        UnknownStatusError: If any component is not a known status.
    """
    components = list(components)
    _check(components, STATUSES)

    if not components:
        return "empty"

    # An input made only of empty components falls through to partial.
    distinct = _unique(c for c in components if c != "empty")
    if len(distinct) == 1:
        return distinct[0]

    for status in _DOMINANT:
        if status in distinct:
            return status

    if "queued" in distinct:
        return "running"

    return "partial"


def parse_framework_status(components: Iterable[str]) -> str:
    """Compute an overarching status for a run container.

    A still-executing run outranks a stale error from a previous run,
    which in turn outranks a refresh in progress.

    Args:
        components: Suite statuses plus any container-level statuses.

    Returns:
        The aggregated framework status.

    Raises:
        UnknownStatusError: If any component is not a known framework status.
    """
    components = list(components)
    _check(components, FRAMEWORK_STATUSES)

    if not components:
        return "empty"

    distinct = _unique(components)
    if len(distinct) == 1:
        return distinct[0]

    for status in _FRAMEWORK_DOMINANT:
        if status in distinct:
            return status

    return parse_status(distinct)
