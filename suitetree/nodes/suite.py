"""Suite nodes: one per test source file.

A suite owns the raw result last reported for its file and, while
bloomed, the ``Test`` objects built from it. Fresh results are merged in
with ``debrief()``, which keeps the identity of tests that survive between
runs.
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any

import structlog

from suitetree.errors import SuiteTreeError
from suitetree.nodes import highlight as highlighter
from suitetree.nodes import paths
from suitetree.nodes.meta import lookup
from suitetree.nodes.nugget import Nugget
from suitetree.nodes.result import (
    children,
    defaults,
    identity_key,
    validate_suite_result,
)
from suitetree.nodes.test import Test


logger = structlog.get_logger(__name__)


@dataclass
class SuiteOptions:
    """Where a suite's files were scanned from."""

    path: str
    root: str
    runs_in_remote: bool = False
    remote_path: str = ""


@dataclass(frozen=True)
class MenuItem:
    """A UI action offered for a node, independent of any toolkit."""

    label: str
    action: str
    enabled: bool = True


class Suite(Nugget):
    """A test file and the tests it contains."""

    def __init__(self, options: SuiteOptions, result: dict[str, Any]) -> None:
        super().__init__()
        validate_suite_result(result)
        self.path = ""
        self.root = ""
        self.runs_in_remote = False
        self.remote_path = "/"
        self.refresh(options)

        self.file: str = result["file"]
        self.result = copy.deepcopy(result)
        self.highlighted = ""
        self.fresh = False
        self._lock = asyncio.Lock()
        self.update_status()

    def refresh(self, options: SuiteOptions) -> None:
        """Apply new scan options to this suite."""
        self.path = options.path
        self.root = options.root
        self.runs_in_remote = bool(options.runs_in_remote)
        self.remote_path = paths.normalize_remote_path(options.remote_path)

    def new_test(self, result: dict[str, Any]) -> Test:
        return Test(result)

    def persist(self) -> dict[str, Any]:
        """Snapshot this suite as a plain result, whatever its bloom state."""
        return {
            "file": self.file,
            "meta": self.get_meta(),
            "testsLoaded": self.tests_loaded(),
            "tests": (
                [test.persist() for test in self.tests]
                if self.bloomed
                else [defaults(result) for result in children(self.result)]
            ),
        }

    async def debrief(self, result: dict[str, Any], cleanup: bool) -> None:
        """Merge a fresh result into this suite.

        Calls are applied one at a time, in the order they were made.

        Args:
            result: Fresh result for this suite's file.
            cleanup: Whether tests absent from ``result`` are dropped.

        Raises:
            MalformedResultError: If ``result`` cannot be reconciled. The
                suite is left untouched.
            UnknownStatusError: If a test in ``result`` reports an unknown
                status. The suite is left untouched.
            BloomError: If the suite's current tests cannot be materialized.
        """
        async with self._lock:
            self._begin_reconcile()
            try:
                validate_suite_result(result)
                # Reconcile against the actual tests, not their raw results
                await self.bloom()

                self.file = result["file"]
                self.result["meta"] = copy.deepcopy(result.get("meta"))
                self.result["console"] = copy.deepcopy(result.get("console"))
                self.result["testsLoaded"] = result.get("testsLoaded")
                await self.debrief_tests(children(result), cleanup)
            except SuiteTreeError as e:
                logger.warning("suite_debrief_failed", suite=self.file, error=str(e))
                raise
            finally:
                self._end_reconcile()

            logger.debug(
                "suite_debriefed",
                suite=self.file,
                tests=self.count_children(),
                status=self.get_status(),
                cleanup=cleanup,
            )

    async def rebuild_tests(self, result: dict[str, Any]) -> None:
        """Regenerate this suite's tests from a result.

        Existing tests with a matching identity are reused as-is, any
        other entry becomes a new test. The suite is withered afterwards
        unless it is expanded.
        """
        async with self._lock:
            self._begin_reconcile()
            try:
                validate_suite_result(result)
                await self.bloom()
                self.tests = [
                    self.find_test(identity_key(entry)) or self.new_test(entry)
                    for entry in children(result)
                ]
                # Tests may have been added or removed
                self.update_status()
            except SuiteTreeError as e:
                logger.warning("suite_rebuild_failed", suite=self.file, error=str(e))
                raise
            finally:
                self._end_reconcile()

            self.wither()
            logger.debug("suite_rebuilt", suite=self.file, tests=self.count_children())

    def update_status(self, to: str | None = None) -> None:
        """Update this suite's status.

        A suite whose tests were never loaded is idle rather than empty.
        """
        super().update_status(to)
        if to is None and self.status == "empty" and not self.tests_loaded():
            self.status = "idle"

    def get_id(self) -> str:
        return self.file

    def get_file(self) -> str:
        return self.file

    def get_file_path(self) -> str:
        """Get this suite's local file path, even when it runs remotely."""
        return paths.file_path(
            self.file, self.root, self.path, self.runs_in_remote, self.remote_path
        )

    def get_relative_path(self) -> str:
        return paths.relative_path(
            self.file, self.root, self.path, self.runs_in_remote, self.remote_path
        )

    def get_display_name(self) -> str:
        return self.get_relative_path()

    def get_status(self) -> str:
        # Unconfirmed until the suite is parsed and its tests loaded
        if self.status == "empty" and not self.tests_loaded():
            return "idle"
        return self.status

    def get_meta(self, key: str | None = None, fallback: Any = None) -> Any:
        """Get this suite's metadata, or one dotted key of it."""
        meta = self.result.get("meta")
        if not key:
            return meta
        if not meta:
            return fallback
        return lookup(meta, key, fallback)

    def reset_meta(self) -> None:
        if self.result.get("meta"):
            self.result["meta"] = None

    def get_console(self) -> list[Any]:
        return self.result.get("console") or []

    def tests_loaded(self) -> bool:
        return bool(self.result.get("testsLoaded"))

    def get_running_order(self) -> int | None:
        return self.get_meta("n", None)

    def get_last_updated(self) -> str | None:
        """When this suite's results last changed."""
        return self.get_meta("updated", None) or self.get_last_run()

    def set_fresh(self, fresh: bool) -> None:
        self.fresh = fresh

    def is_fresh(self) -> bool:
        return self.fresh

    def highlight(self, keyword: str, exact: bool = False) -> None:
        """Highlight the part of the display name matching a search keyword.

        Args:
            keyword: Search keyword. An empty keyword clears the highlight.
            exact: Match the keyword literally instead of as a subsequence.
        """
        if exact:
            self.highlighted = highlighter.highlight_exact(
                self.get_display_name(), keyword
            )
        else:
            self.highlighted = highlighter.highlight_fuzzy(
                self.get_display_name(), keyword
            )

    def get_highlight(self) -> str:
        return self.highlighted

    def is_highlighted(self) -> bool:
        return bool(self.highlighted)

    def context_menu(self) -> list[MenuItem]:
        """Actions the UI may offer for this suite."""
        return [
            MenuItem("Run", "run", enabled=self.tests_loaded()),
            MenuItem("Select all tests", "select", enabled=self.has_children()),
            MenuItem("Copy relative path", "copy-relative-path"),
            MenuItem("Copy absolute path", "copy-path"),
            MenuItem("Reveal in folder", "reveal"),
            MenuItem("Open in editor", "open"),
        ]
