"""A single test in a suite, possibly holding nested tests."""

from __future__ import annotations

import copy
from typing import Any

from suitetree.errors import MalformedResultError
from suitetree.nodes.nugget import Nugget
from suitetree.nodes.result import children, defaults, identity_key


class Test(Nugget):
    """One test, matched across payloads by its ``id`` (or ``name``).

    A test without nested tests reports the status of its own result. A
    test with nested tests reports the aggregate of theirs.
    """

    __test__ = False  # not a pytest class

    def __init__(self, result: dict[str, Any]) -> None:
        super().__init__()
        if identity_key(result) is None:
            raise MalformedResultError("Test result has neither an 'id' nor a 'name'")
        self.result = copy.deepcopy(result)
        self.update_status()

    def new_test(self, result: dict[str, Any]) -> Test:
        return Test(result)

    def get_id(self) -> str:
        key = identity_key(self.result)
        assert key is not None
        return key

    def get_name(self) -> str:
        return self.result.get("name") or self.get_id()

    def get_display_name(self) -> str:
        return self.result.get("displayName") or self.get_name()

    def get_feedback(self) -> Any:
        return self.result.get("feedback")

    def get_console(self) -> list[Any]:
        return self.result.get("console") or []

    def get_params(self) -> str:
        return self.result.get("params") or ""

    def get_stats(self) -> dict[str, Any]:
        return self.result.get("stats") or {}

    def update_status(self, to: str | None = None) -> None:
        if to is None and not self.has_children():
            to = self.result.get("status") or "idle"
        super().update_status(to)
        self.result["status"] = self.status

    async def debrief(self, result: dict[str, Any], cleanup: bool) -> None:
        """Update this test from a fresh result, keeping its identity.

        Args:
            result: Fresh result for this test.
            cleanup: Whether nested tests absent from ``result`` are dropped.
        """
        self.result.update(
            {
                key: copy.deepcopy(value)
                for key, value in result.items()
                if key != "tests"
            }
        )

        nested = children(result)
        if not nested and not self.has_children():
            self.update_status()
            return

        self._begin_reconcile()
        try:
            await self.bloom()
            await self.debrief_tests(nested, cleanup)
        finally:
            self._end_reconcile()

    def persist(self) -> dict[str, Any]:
        """Snapshot this test and its nested tests as a plain result."""
        persisted = defaults(
            {key: value for key, value in self.result.items() if key != "tests"}
        )
        persisted["status"] = self.status
        persisted["tests"] = (
            [test.persist() for test in self.tests]
            if self.bloomed
            else [defaults(result) for result in children(self.result)]
        )
        return persisted
