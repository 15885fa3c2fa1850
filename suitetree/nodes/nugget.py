"""Lazy-loading lifecycle shared by every node in the suite tree.

A node keeps the last raw result it was given and only turns its nested
results into full ``Test`` objects when it is bloomed. Withering writes the
state of the materialized children back into the raw result and drops the
objects, so every query can still be answered from the raw data alone.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from suitetree.aggregation.status import parse_status
from suitetree.errors import BloomError, SuiteTreeError
from suitetree.nodes.result import (
    children,
    defaults,
    identity_key,
    iter_all,
    iter_leaves,
    set_status,
    status_of,
)

if TYPE_CHECKING:
    from suitetree.nodes.test import Test


logger = structlog.get_logger(__name__)


class Nugget:
    """Mixin providing bloom/wither, expansion, selection and status caching.

    Subclasses must set ``self.result`` and implement ``get_id()`` and
    ``new_test()``.
    """

    def __init__(self) -> None:
        self.result: dict[str, Any] = {}
        self.tests: list[Test] = []
        self.status: str = "idle"
        self.expanded: bool = False
        self.selected: bool = False
        self.bloomed: bool = False
        self._blooming: asyncio.Task[None] | None = None
        self._reconciling = 0
        self._wither_pending = False

    def get_id(self) -> str:
        raise NotImplementedError

    def new_test(self, result: dict[str, Any]) -> Test:
        """Instantiate a child test from its raw result."""
        raise NotImplementedError

    async def bloom(self) -> None:
        """Materialize this node's children from its raw result.

        Idempotent. Calls made while a bloom is in flight wait for that
        same bloom instead of starting another one.

        Raises:
            BloomError: If a child cannot be materialized. The node stays
                withered so the bloom can be retried.
        """
        if self.bloomed:
            return

        if self._blooming is None:
            self._blooming = asyncio.create_task(self._materialize())

        blooming = self._blooming
        try:
            await blooming
        finally:
            if self._blooming is blooming:
                self._blooming = None

    async def _materialize(self) -> None:
        await asyncio.sleep(0)
        if self.bloomed:
            return

        try:
            tests = [self.new_test(result) for result in children(self.result)]
            parse_status(test.get_status() for test in tests)
        except (SuiteTreeError, TypeError, ValueError) as e:
            logger.warning("bloom_failed", node=self.get_id(), error=str(e))
            raise BloomError(
                f"Could not materialize children of '{self.get_id()}': {e}"
            ) from e

        self.tests = tests
        self.bloomed = True
        self.update_status()
        logger.debug("bloomed", node=self.get_id(), tests=len(tests))

    def wither(self) -> None:
        """Discard materialized children, keeping their state in the raw result.

        Does nothing while the node is expanded, so a visible subtree
        never disappears. A wither requested while the node is being
        reconciled is deferred until the reconciliation ends.
        """
        if self.expanded:
            return
        if self._reconciling:
            # Applied once the running reconciliation finishes
            self._wither_pending = True
            return
        if not self.bloomed:
            return

        self.result["tests"] = [test.persist() for test in self.tests]
        self.tests = []
        self.bloomed = False
        logger.debug("withered", node=self.get_id())

    def _begin_reconcile(self) -> None:
        self._reconciling += 1

    def _end_reconcile(self) -> None:
        self._reconciling -= 1
        if not self._reconciling and self._wither_pending:
            self._wither_pending = False
            self.wither()

    async def toggle_expanded(
        self, toggle: bool | None = None, cascade: bool = False
    ) -> None:
        """Expand or collapse this node.

        Expanding blooms the node. Collapsing withers it, after collapsing
        its materialized descendants first when ``cascade`` is set.
        """
        self.expanded = not self.expanded if toggle is None else toggle

        if self.expanded:
            await self.bloom()
            return

        if cascade:
            for test in self.tests:
                await test.toggle_expanded(False, cascade=True)
        self.wither()

    def toggle_selected(
        self, toggle: bool | None = None, cascade: bool = False
    ) -> None:
        """Select or deselect this node, and optionally its descendants."""
        self.selected = not self.selected if toggle is None else toggle

        if cascade:
            for test in self.tests:
                test.toggle_selected(self.selected, cascade=True)

    def update_status(self, to: str | None = None) -> None:
        """Set this node's status, or derive it from its children."""
        if to is None:
            if self.bloomed:
                statuses = [test.get_status() for test in self.tests]
            else:
                statuses = [status_of(result) for result in children(self.result)]
            to = parse_status(statuses)
        self.status = to

    def get_status(self) -> str:
        return self.status

    def count_children(self) -> int:
        if self.bloomed:
            return len(self.tests)
        return len(children(self.result))

    def has_children(self) -> bool:
        return self.count_children() > 0

    def find_test(self, key: str) -> Test | None:
        """Find a materialized child by identity key."""
        for test in self.tests:
            if test.get_id() == key:
                return test
        return None

    async def debrief_tests(
        self, results: list[dict[str, Any]], cleanup: bool
    ) -> None:
        """Reconcile materialized children against fresh results.

        Children matching a result by identity key are debriefed in place,
        keeping their object identity and flags. Unmatched results become
        new children. With ``cleanup``, children missing from the results
        are dropped and the results' order wins; without it they are kept
        where they were and new children are appended.

        Args:
            results: Fresh child results.
            cleanup: Whether to drop children absent from ``results``.
        """
        existing = {test.get_id(): test for test in self.tests}
        matched: dict[str, Test] = {}

        for result in results:
            key = identity_key(result)
            test = existing.get(key)
            if test is None:
                test = self.new_test(result)
            else:
                await test.debrief(result, cleanup)
            matched[key] = test

        if cleanup:
            self.tests = list(matched.values())
        else:
            kept = [matched.pop(test.get_id(), test) for test in self.tests]
            self.tests = kept + list(matched.values())

        self.update_status()

    def idle(self, selective: bool = False) -> None:
        """Reset this node and its children to idle."""
        self._cascade_status("idle", selective)

    def queue(self, selective: bool = False) -> None:
        """Mark this node and its children as queued."""
        self._cascade_status("queued", selective)

    def idle_queued(self, selective: bool = False) -> None:
        """Reset only the queued nodes below (and including) this one to idle."""
        self._cascade_status("idle", selective, only="queued")

    def _cascade_status(
        self, to: str, selective: bool, only: str | None = None
    ) -> None:
        if not self.has_children():
            if only is None or self.status == only:
                self.update_status(to)
            return

        if self.bloomed:
            for test in self.tests:
                if not selective or test.selected:
                    test._cascade_status(to, selective, only)
        elif not selective:
            # Withered children cannot be selected
            for result in children(self.result):
                set_status(result, to, only)
        self.update_status()

    def child_results(self) -> list[dict[str, Any]]:
        """Get the current child results, defaulted, whatever the bloom state."""
        if self.bloomed:
            return [test.persist() for test in self.tests]
        return [defaults(result) for result in children(self.result)]

    def get_total_duration(self) -> float:
        """Sum of the durations of every leaf test below this node."""
        return sum(
            leaf["stats"].get("duration") or 0
            for leaf in iter_leaves(self.child_results())
        )

    def get_max_duration(self) -> float:
        """Longest duration of any leaf test below this node."""
        return max(
            (
                leaf["stats"].get("duration") or 0
                for leaf in iter_leaves(self.child_results())
            ),
            default=0,
        )

    def get_last_run(self) -> str | None:
        """Most recent run timestamp of any test below this node."""
        stamps = [
            result["stats"]["last"]
            for result in iter_all(self.child_results())
            if result["stats"].get("last")
        ]
        return max(stamps) if stamps else None
