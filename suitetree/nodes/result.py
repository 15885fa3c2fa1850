"""Helpers for the raw result payloads handed over by the execution layer.

A suite result is a plain dict with a ``file`` key and an optional list of
test results under ``tests``. Test results are recursive and are matched
across payloads by their identity key (``id``, falling back to ``name``).
"""

from __future__ import annotations

import copy
from typing import Any, Iterator

from suitetree.aggregation.status import STATUSES, parse_status
from suitetree.errors import MalformedResultError, UnknownStatusError


# Baseline values a freshly built test carries
TEST_DEFAULTS: dict[str, Any] = {
    "status": "idle",
    "name": "",
    "feedback": None,
    "console": [],
    "params": "",
    "stats": {},
    "meta": None,
    "tests": [],
}


def identity_key(result: dict[str, Any]) -> str | None:
    """Get the key that identifies a test result across payloads."""
    for field in ("id", "name"):
        value = result.get(field)
        if value not in (None, ""):
            return str(value)
    return None


def children(result: dict[str, Any]) -> list[dict[str, Any]]:
    """Get the nested test results of a result, or an empty list."""
    return result.get("tests") or []


def validate_tests(tests: Any, where: str) -> None:
    """Check that a list of test results can be reconciled.

    Args:
        tests: The value found under a result's ``tests`` key.
        where: Description of the owner, used in error messages.

    Raises:
        MalformedResultError: If an entry lacks an identity key, or two
            siblings share one.
        UnknownStatusError: If an entry reports a status outside STATUSES.
    """
    if tests is None:
        return
    if not isinstance(tests, list):
        raise MalformedResultError(
            f"{where}: 'tests' must be a list, got {type(tests).__name__}"
        )

    seen: set[str] = set()
    for index, entry in enumerate(tests):
        if not isinstance(entry, dict):
            raise MalformedResultError(
                f"{where}: test #{index} is not a mapping"
            )
        key = identity_key(entry)
        if key is None:
            raise MalformedResultError(
                f"{where}: test #{index} has neither an 'id' nor a 'name'"
            )
        if key in seen:
            raise MalformedResultError(
                f"{where}: duplicate test identity '{key}'"
            )
        seen.add(key)
        status = entry.get("status")
        if status and (not isinstance(status, str) or status not in STATUSES):
            raise UnknownStatusError(
                f"{where} > {key}: unknown status '{status}'"
            )
        validate_tests(entry.get("tests"), f"{where} > {key}")


def validate_suite_result(result: Any) -> None:
    """Check that a suite result can be reconciled.

    Raises:
        MalformedResultError: If the result has no file or malformed tests.
        UnknownStatusError: If a test reports an unknown status.
    """
    if not isinstance(result, dict):
        raise MalformedResultError("Suite result must be a mapping")
    file = result.get("file")
    if not isinstance(file, str) or not file:
        raise MalformedResultError("Suite result is missing 'file'")
    validate_tests(result.get("tests"), file)


def defaults(result: dict[str, Any]) -> dict[str, Any]:
    """Fill a raw test result with the baseline values of a fresh test.

    Nested results are filled recursively. The input is left untouched.

    Args:
        result: Raw test result.

    Returns:
        A new dict carrying every baseline key.
    """
    filled: dict[str, Any] = copy.deepcopy(TEST_DEFAULTS)
    filled.update(
        {key: copy.deepcopy(value) for key, value in result.items() if key != "tests"}
    )
    for key, value in TEST_DEFAULTS.items():
        if filled[key] is None and value is not None:
            filled[key] = copy.deepcopy(value)
    if not filled.get("displayName"):
        filled["displayName"] = filled["name"]
    filled["tests"] = [defaults(child) for child in children(result)]
    filled["status"] = status_of(filled)
    return filled


def status_of(result: dict[str, Any]) -> str:
    """Get the canonical status of a raw test result.

    A result with nested tests takes the aggregate of their statuses,
    otherwise its own reported status (idle when never run).
    """
    nested = children(result)
    if nested:
        return parse_status(status_of(child) for child in nested)
    return result.get("status") or "idle"


def iter_leaves(results: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    """Yield every leaf test result below a list of results, depth first."""
    for result in results:
        nested = children(result)
        if nested:
            yield from iter_leaves(nested)
        else:
            yield result


def iter_all(results: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    """Yield every test result below a list of results, depth first."""
    for result in results:
        yield result
        yield from iter_all(children(result))


def set_status(result: dict[str, Any], to: str, only: str | None = None) -> None:
    """Set the status of every leaf below a raw result, in place.

    Args:
        result: Raw test result.
        to: Status to set.
        only: When given, only leaves currently in this status change.
    """
    nested = children(result)
    for child in nested:
        set_status(child, to, only)
    if nested:
        result["status"] = status_of(result)
    elif only is None or (result.get("status") or "idle") == only:
        result["status"] = to
