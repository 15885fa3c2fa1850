"""Top-level run container holding every suite of a test framework.

The framework matches incoming suite results to suites by file, tracks
which suites were seen since the last refresh started, and reports the
run-level status (which, unlike a suite's, can be refreshing or error).
"""

from __future__ import annotations

from typing import Any

import structlog

from suitetree.aggregation.status import parse_framework_status
from suitetree.config import TreeConfig
from suitetree.nodes.highlight import MARK_START
from suitetree.nodes.result import validate_suite_result
from suitetree.nodes.suite import Suite


logger = structlog.get_logger(__name__)


class Framework:
    """Ordered collection of suites with a framework-level status."""

    def __init__(self, config: TreeConfig | None = None) -> None:
        self.config = config or TreeConfig()
        self.suites: dict[str, Suite] = {}
        self.refreshing = False
        self.errored = False

    @classmethod
    def restore(
        cls, config: TreeConfig | None, snapshot: dict[str, Any]
    ) -> Framework:
        """Rebuild a framework from the output of ``persist()``.

        Args:
            config: Configuration to apply to restored suites.
            snapshot: Dict with a ``suites`` list of persisted suites.

        Returns:
            A framework holding one withered suite per persisted suite.
        """
        framework = cls(config)
        for result in snapshot.get("suites", []):
            framework.add_suite(result)
        return framework

    def add_suite(self, result: dict[str, Any]) -> Suite:
        """Create a suite from a result and add it to the framework."""
        suite = Suite(self.config.suite_options(), result)
        self.suites[suite.get_id()] = suite
        return suite

    def get_suite(self, file: str) -> Suite | None:
        return self.suites.get(file)

    def count_suites(self) -> int:
        return len(self.suites)

    async def debrief(
        self, results: list[dict[str, Any]], cleanup: bool
    ) -> None:
        """Merge fresh suite results into the framework.

        Existing suites are debriefed in place, unknown files become new
        suites. Every suite touched is marked fresh. Collapsed suites are
        withered afterwards when configured to.

        Args:
            results: Fresh suite results.
            cleanup: Whether tests absent from a result are dropped.
        """
        for result in results:
            validate_suite_result(result)

        for result in results:
            suite = self.get_suite(result["file"])
            if suite is None:
                suite = self.add_suite(result)
            else:
                await suite.debrief(result, cleanup)
            suite.set_fresh(True)

            if self.config.wither_collapsed and not suite.expanded:
                suite.wither()

        logger.info(
            "framework_debriefed",
            suites=len(results),
            total=self.count_suites(),
            status=self.get_status(),
        )

    def start_refresh(self) -> None:
        """Mark the framework as refreshing and forget which suites are fresh."""
        self.refreshing = True
        for suite in self.suites.values():
            suite.set_fresh(False)

    def finish_refresh(self, prune: bool = True) -> list[str]:
        """End a refresh, dropping suites not seen since it started.

        Args:
            prune: Whether stale suites are removed.

        Returns:
            Files of the removed suites.
        """
        self.refreshing = False
        stale: list[str] = []
        if prune:
            stale = [
                file for file, suite in self.suites.items() if not suite.is_fresh()
            ]
            for file in stale:
                del self.suites[file]
        logger.info("framework_refreshed", removed=len(stale), total=self.count_suites())
        return stale

    def set_error(self, errored: bool) -> None:
        self.errored = errored

    def refresh_options(self) -> None:
        """Push the current scan options into every suite."""
        options = self.config.suite_options()
        for suite in self.suites.values():
            suite.refresh(options)

    def get_status(self) -> str:
        components = [suite.get_status() for suite in self.suites.values()]
        if self.refreshing:
            components.append("refreshing")
        if self.errored:
            components.append("error")
        return parse_framework_status(components)

    def _targets(self, selective: bool) -> list[Suite]:
        return [
            suite
            for suite in self.suites.values()
            if not selective or suite.selected
        ]

    def queue(self, selective: bool = False) -> None:
        """Queue every suite, or only the selected ones."""
        for suite in self._targets(selective):
            suite.queue(selective)

    def idle(self, selective: bool = False) -> None:
        for suite in self._targets(selective):
            suite.idle(selective)

    def idle_queued(self, selective: bool = False) -> None:
        """Reset queued suites and tests to idle, e.g. after a stopped run."""
        for suite in self._targets(selective):
            suite.idle_queued(selective)

    def highlight(self, keyword: str, exact: bool = False) -> list[Suite]:
        """Highlight every suite and return those with at least one match."""
        for suite in self.suites.values():
            suite.highlight(keyword, exact)
        return [
            suite
            for suite in self.suites.values()
            if MARK_START in suite.get_highlight()
        ]

    def persist(self) -> dict[str, Any]:
        return {"suites": [suite.persist() for suite in self.suites.values()]}
