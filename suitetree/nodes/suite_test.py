"""Unit tests for suites: reconciliation, persistence, paths and queries."""

from __future__ import annotations

import asyncio

import pytest

from structlog.testing import capture_logs

from suitetree.errors import BloomError, MalformedResultError, UnknownStatusError
from suitetree.nodes.suite import MenuItem, Suite, SuiteOptions


FILE = "/home/me/proj/test/a.spec"


def _options(**overrides) -> SuiteOptions:
    values = {"path": "", "root": "/home/me/proj"}
    values.update(overrides)
    return SuiteOptions(**values)


def _result(*tests, **extra) -> dict:
    """Create a suite result holding the given test results."""
    result = {"file": FILE, "testsLoaded": True, "tests": list(tests)}
    result.update(extra)
    return result


def _test(key: str, status: str = "passed", **extra) -> dict:
    entry = {"id": key, "name": key, "status": status}
    entry.update(extra)
    return entry


def _make_suite(*tests, **extra) -> Suite:
    return Suite(_options(), _result(*tests, **extra))


class TestConstruction:
    """Tests for creating suites."""

    def test_identity_is_file(self):
        suite = _make_suite()
        assert suite.get_id() == FILE
        assert suite.get_file() == FILE

    def test_starts_withered(self):
        suite = _make_suite(_test("a"), _test("b"))
        assert suite.bloomed is False
        assert suite.tests == []
        assert suite.count_children() == 2
        assert suite.has_children() is True

    def test_status_without_bloom(self):
        suite = _make_suite(_test("a"), _test("b", "failed"))
        assert suite.get_status() == "failed"
        assert suite.bloomed is False

    def test_missing_file_rejected(self):
        with pytest.raises(MalformedResultError):
            Suite(_options(), {"tests": []})

    def test_remote_path_gets_leading_slash(self):
        suite = Suite(_options(runs_in_remote=True, remote_path="srv"), _result())
        assert suite.remote_path == "/srv"

    def test_empty_remote_path_is_slash(self):
        suite = Suite(_options(remote_path=""), _result())
        assert suite.remote_path == "/"

    def test_result_not_shared_with_caller(self):
        result = _result(_test("a"))
        suite = Suite(_options(), result)
        suite.reset_meta()
        suite.result["meta"] = {"n": 1}
        assert "meta" not in result

    def test_nested_results_not_shared_with_caller(self):
        """Status cascades on a withered suite leave the caller's payload alone."""
        result = _result(_test("a"), {"id": "group", "tests": [_test("x")]})
        suite = Suite(_options(), result)
        suite.queue()
        assert suite.get_status() == "queued"
        assert result["tests"][0]["status"] == "passed"
        assert result["tests"][1]["tests"][0]["status"] == "passed"

    def test_debriefed_results_not_shared_with_caller(self):
        suite = _make_suite()
        payload = _result(_test("a"))
        asyncio.run(suite.debrief(payload, True))
        suite.wither()
        suite.idle()
        assert payload["tests"][0]["status"] == "passed"


class TestSuiteStatus:
    """Tests for suite-level status rules."""

    def test_unloaded_empty_suite_is_idle(self):
        suite = Suite(_options(), {"file": FILE, "testsLoaded": False})
        assert suite.get_status() == "idle"

    def test_loaded_empty_suite_is_empty(self):
        suite = Suite(_options(), {"file": FILE, "testsLoaded": True})
        assert suite.get_status() == "empty"

    def test_unloaded_with_tests_keeps_aggregate(self):
        suite = Suite(_options(), {"file": FILE, "tests": [_test("a", "failed")]})
        assert suite.get_status() == "failed"


class TestDebrief:
    """Tests for Suite.debrief()."""

    def test_updates_snapshot_fields(self):
        suite = _make_suite(_test("a"))
        asyncio.run(suite.debrief(
            _result(_test("a"), meta={"n": 4}, console=["hello"], testsLoaded=False),
            True,
        ))
        assert suite.get_meta() == {"n": 4}
        assert suite.get_console() == ["hello"]
        assert suite.tests_loaded() is False

    def test_blooms_suite(self):
        suite = _make_suite(_test("a"))
        asyncio.run(suite.debrief(_result(_test("a", "failed")), True))
        assert suite.bloomed is True
        assert suite.get_status() == "failed"

    def test_cleanup_drops_missing_tests(self):
        suite = _make_suite(_test("a"), _test("b"))
        asyncio.run(suite.debrief(_result(_test("b")), True))
        assert [t.get_id() for t in suite.tests] == ["b"]

    def test_no_cleanup_keeps_missing_tests(self):
        suite = _make_suite(_test("a"), _test("b"))
        asyncio.run(suite.debrief(_result(_test("b", "failed")), False))
        assert [t.get_id() for t in suite.tests] == ["a", "b"]
        assert suite.get_status() == "failed"

    def test_no_cleanup_appends_new_tests(self):
        suite = _make_suite(_test("a"), _test("b"))
        asyncio.run(suite.debrief(_result(_test("c"), _test("a")), False))
        assert [t.get_id() for t in suite.tests] == ["a", "b", "c"]

    def test_cleanup_follows_payload_order(self):
        suite = _make_suite(_test("a"), _test("b"))
        asyncio.run(suite.debrief(_result(_test("b"), _test("a")), True))
        assert [t.get_id() for t in suite.tests] == ["b", "a"]

    def test_identity_and_flags_preserved(self):
        """A test matched across two debriefs stays the same object."""
        suite = _make_suite()

        async def scenario():
            await suite.debrief(_result(_test("a", "queued"), _test("b", "queued")), True)
            first = suite.find_test("a")
            first.toggle_selected(True)
            await first.toggle_expanded(True)
            await suite.debrief(_result(_test("a", "passed"), _test("b", "failed")), True)
            return first

        first = asyncio.run(scenario())
        assert suite.find_test("a") is first
        assert first.selected is True
        assert first.expanded is True
        assert first.get_status() == "passed"
        assert suite.get_status() == "failed"

    def test_nested_tests_reconciled(self):
        suite = _make_suite()
        nested = {"id": "group", "tests": [_test("x", "queued"), _test("y", "queued")]}

        async def scenario():
            await suite.debrief(_result(nested), True)
            group = suite.find_test("group")
            await group.bloom()
            x = group.find_test("x")
            await suite.debrief(
                _result({"id": "group", "tests": [_test("x", "passed"), _test("y", "skipped")]}),
                True,
            )
            return group, x

        group, x = asyncio.run(scenario())
        assert suite.find_test("group") is group
        assert group.find_test("x") is x
        assert x.get_status() == "passed"
        assert group.get_status() == "partial"
        assert suite.get_status() == "partial"

    def test_malformed_payload_rejected_before_mutation(self):
        suite = _make_suite(_test("a"), meta={"n": 1})
        with pytest.raises(MalformedResultError):
            asyncio.run(suite.debrief(
                {"file": FILE, "meta": {"n": 2}, "tests": [{"status": "passed"}]},
                True,
            ))
        assert suite.get_meta("n") == 1
        assert suite.bloomed is False

    def test_missing_file_rejected(self):
        suite = _make_suite()
        with pytest.raises(MalformedResultError):
            asyncio.run(suite.debrief({"tests": []}, True))

    def test_bloom_failure_surfaces(self):
        suite = _make_suite(_test("a"))
        suite.result["tests"][0]["status"] = "unheard-of"
        with pytest.raises(BloomError):
            asyncio.run(suite.debrief(_result(_test("a")), True))
        assert suite.bloomed is False

    def test_debriefs_apply_in_call_order(self):
        """A later debrief never gets overwritten by an earlier one."""
        suite = _make_suite(_test("a", "queued"))

        async def scenario():
            first = asyncio.create_task(
                suite.debrief(_result(_test("a", "running"), meta={"n": 1}), True)
            )
            second = asyncio.create_task(
                suite.debrief(_result(_test("a", "passed"), meta={"n": 2}), True)
            )
            await asyncio.gather(first, second)

        asyncio.run(scenario())
        assert suite.get_meta("n") == 2
        assert suite.find_test("a").get_status() == "passed"

    def test_empty_payload_with_cleanup(self):
        suite = _make_suite(_test("a"))
        asyncio.run(suite.debrief(_result(), True))
        assert suite.tests == []
        assert suite.bloomed is True
        assert suite.get_status() == "empty"

    def test_unknown_status_rejected_before_mutation(self):
        suite = _make_suite(_test("a"))
        with pytest.raises(UnknownStatusError, match="bogus"):
            asyncio.run(suite.debrief(_result(_test("a", "bogus"), _test("b")), True))
        assert suite.count_children() == 1
        assert suite.result["tests"][0]["status"] == "passed"
        assert suite.get_status() == "passed"
        suite.update_status()
        assert suite.get_status() == "passed"

    def test_unknown_nested_status_rejected(self):
        suite = _make_suite({"id": "group", "tests": [_test("x")]})
        with pytest.raises(UnknownStatusError):
            asyncio.run(suite.debrief(
                _result({"id": "group", "tests": [_test("x", "exploded")]}), True
            ))
        assert suite.persist()["tests"][0]["tests"][0]["status"] == "passed"

    def test_failure_logged_with_suite(self):
        suite = _make_suite(_test("a"))
        with capture_logs() as logs:
            with pytest.raises(MalformedResultError):
                asyncio.run(suite.debrief(_result({"status": "passed"}), True))
        failures = [e for e in logs if e["event"] == "suite_debrief_failed"]
        assert len(failures) == 1
        assert failures[0]["suite"] == FILE
        assert failures[0]["log_level"] == "warning"

    def test_wither_during_debrief_is_deferred(self):
        """A collapse landing mid-debrief neither loses the update nor leaves stray tests."""
        suite = _make_suite({"id": "t", "tests": [_test("n", "passed")]})

        async def scenario():
            task = asyncio.create_task(suite.debrief(
                _result({"id": "t", "tests": [_test("n", "failed")]}), True
            ))
            while not suite.bloomed:
                await asyncio.sleep(0)
            suite.wither()
            assert suite.bloomed is True
            await task

        asyncio.run(scenario())
        assert suite.bloomed is False
        assert suite.tests == []
        assert suite.get_status() == "failed"
        assert suite.persist()["tests"][0]["tests"][0]["status"] == "failed"

    def test_expand_after_deferred_wither_keeps_tests(self):
        suite = _make_suite({"id": "t", "tests": [_test("n", "passed")]})

        async def scenario():
            task = asyncio.create_task(suite.debrief(
                _result({"id": "t", "tests": [_test("n", "failed")]}), True
            ))
            while not suite.bloomed:
                await asyncio.sleep(0)
            suite.wither()
            suite.expanded = True
            await task

        asyncio.run(scenario())
        assert suite.bloomed is True
        assert suite.find_test("t").get_status() == "failed"


class TestRebuildTests:
    """Tests for Suite.rebuild_tests()."""

    def test_collapsed_suite_withers(self):
        suite = _make_suite(_test("a"))
        asyncio.run(suite.rebuild_tests(_result(_test("a"), _test("b", "failed"))))
        assert suite.bloomed is False
        assert suite.count_children() == 2
        assert suite.get_status() == "failed"

    def test_expanded_suite_stays_bloomed(self):
        suite = _make_suite(_test("a"))

        async def scenario():
            await suite.toggle_expanded(True)
            await suite.rebuild_tests(_result(_test("a"), _test("b")))

        asyncio.run(scenario())
        assert suite.bloomed is True
        assert [t.get_id() for t in suite.tests] == ["a", "b"]

    def test_reuses_matching_tests(self):
        suite = _make_suite(_test("a"), _test("b"))

        async def scenario():
            await suite.toggle_expanded(True)
            before = suite.find_test("a")
            await suite.rebuild_tests(_result(_test("a", "failed"), _test("c")))
            return before

        before = asyncio.run(scenario())
        assert suite.find_test("a") is before
        # Reused wholesale, not debriefed
        assert before.get_status() == "passed"
        assert [t.get_id() for t in suite.tests] == ["a", "c"]

    def test_fewer_tests(self):
        suite = _make_suite(_test("a"), _test("b"), _test("c"))
        asyncio.run(suite.rebuild_tests(_result(_test("c", "skipped"))))
        assert suite.count_children() == 1
        assert suite.get_status() == "passed"

    def test_no_tests(self):
        suite = _make_suite(_test("a"))
        asyncio.run(suite.rebuild_tests(_result()))
        assert suite.count_children() == 0
        assert suite.get_status() == "empty"


class TestPersist:
    """Tests for Suite.persist()."""

    def test_withered_fills_defaults(self):
        suite = _make_suite({"id": "a", "status": "passed"}, meta={"n": 1})
        persisted = suite.persist()
        assert persisted["file"] == FILE
        assert persisted["meta"] == {"n": 1}
        assert persisted["testsLoaded"] is True
        test = persisted["tests"][0]
        assert test["meta"] is None
        assert test["console"] == []
        assert test["stats"] == {}
        assert test["tests"] == []

    def test_same_shape_bloomed_or_withered(self):
        suite = _make_suite(
            {"id": "a", "status": "passed"},
            {"id": "g", "tests": [{"id": "x", "status": "failed"}]},
        )
        withered = suite.persist()
        asyncio.run(suite.bloom())
        assert suite.persist() == withered

    def test_does_not_bloom(self):
        suite = _make_suite(_test("a"))
        suite.persist()
        assert suite.bloomed is False


class TestMeta:
    """Tests for metadata accessors."""

    def test_get_meta_without_key(self):
        suite = _make_suite(meta={"n": 2})
        assert suite.get_meta() == {"n": 2}

    def test_get_meta_dotted(self):
        suite = _make_suite(meta={"coverage": {"lines": 90}})
        assert suite.get_meta("coverage.lines") == 90

    def test_get_meta_fallback(self):
        suite = _make_suite(meta={"n": 2})
        assert suite.get_meta("missing", "fb") == "fb"
        assert suite.get_meta("missing") is None

    def test_get_meta_without_meta(self):
        suite = _make_suite()
        assert suite.get_meta("n", 0) == 0

    def test_reset_meta(self):
        suite = _make_suite(meta={"n": 2})
        suite.reset_meta()
        assert suite.get_meta() is None

    def test_running_order(self):
        assert _make_suite(meta={"n": 3}).get_running_order() == 3
        assert _make_suite().get_running_order() is None

    def test_console_defaults_to_empty(self):
        assert _make_suite().get_console() == []


class TestAggregateQueries:
    """Tests for duration and timestamp queries."""

    def _suite(self) -> Suite:
        return _make_suite(
            _test("a", stats={"duration": 4, "last": "2024-03-01T08:00:00"}),
            {
                "id": "g",
                "tests": [
                    _test("x", stats={"duration": 10, "last": "2024-03-02T08:00:00"}),
                    _test("y", stats={"duration": 1}),
                ],
            },
        )

    def test_total_duration(self):
        assert self._suite().get_total_duration() == 15

    def test_max_duration(self):
        assert self._suite().get_max_duration() == 10

    def test_last_run(self):
        assert self._suite().get_last_run() == "2024-03-02T08:00:00"

    def test_last_updated_prefers_meta(self):
        suite = self._suite()
        suite.result["meta"] = {"updated": "2024-04-01T00:00:00"}
        assert suite.get_last_updated() == "2024-04-01T00:00:00"

    def test_last_updated_falls_back_to_last_run(self):
        assert self._suite().get_last_updated() == "2024-03-02T08:00:00"

    def test_same_answers_bloomed(self):
        suite = self._suite()
        asyncio.run(suite.bloom())
        assert suite.get_total_duration() == 15
        assert suite.get_max_duration() == 10


class TestPaths:
    """Tests for path accessors."""

    def test_local(self):
        suite = _make_suite()
        assert suite.get_file_path() == FILE
        assert suite.get_relative_path() == "test/a.spec"
        assert suite.get_display_name() == "test/a.spec"

    def test_remote_slash_mount(self):
        suite = Suite(
            _options(runs_in_remote=True, remote_path="/"),
            {"file": "/srv/proj/test/a.spec"},
        )
        assert suite.get_relative_path() == "/srv/proj/test/a.spec"

    def test_remote_mount(self):
        suite = Suite(
            _options(runs_in_remote=True, remote_path="/srv", path="proj"),
            {"file": "/srv/proj/test/a.spec"},
        )
        assert suite.get_relative_path() == "test/a.spec"
        assert suite.get_file_path() == "/home/me/proj/test/a.spec"

    def test_remote_mount_without_slash(self):
        suite = Suite(
            _options(runs_in_remote=True, remote_path="srv", path="proj"),
            {"file": "/srv/proj/test/a.spec"},
        )
        assert suite.get_relative_path() == "test/a.spec"

    def test_refresh_changes_paths(self):
        suite = _make_suite()
        suite.refresh(_options(root="/home/me"))
        assert suite.get_relative_path() == "proj/test/a.spec"


class TestHighlight:
    """Tests for suite highlighting."""

    def test_fuzzy(self):
        suite = Suite(_options(root="/r"), {"file": "/r/cab"})
        suite.highlight("ab")
        assert suite.get_highlight() == "c[==]a[!==][==]b[!==]"
        assert suite.is_highlighted() is True

    def test_exact(self):
        suite = Suite(_options(root="/r"), {"file": "/r/xaby"})
        suite.highlight("AB", exact=True)
        assert suite.get_highlight() == "x[==]a[!==][==]b[!==]y"

    def test_clear(self):
        suite = Suite(_options(root="/r"), {"file": "/r/cab"})
        suite.highlight("ab")
        suite.highlight("")
        assert suite.get_highlight() == ""
        assert suite.is_highlighted() is False


class TestContextMenu:
    """Tests for the context menu descriptors."""

    def test_descriptors(self):
        menu = _make_suite(_test("a")).context_menu()
        assert all(isinstance(item, MenuItem) for item in menu)
        actions = {item.action: item for item in menu}
        assert actions["run"].enabled is True
        assert actions["select"].enabled is True
        assert "copy-path" in actions

    def test_disabled_when_not_loaded(self):
        suite = Suite(_options(), {"file": FILE})
        actions = {item.action: item for item in suite.context_menu()}
        assert actions["run"].enabled is False
        assert actions["select"].enabled is False


class TestFresh:
    """Tests for the fresh flag."""

    def test_fresh_flag(self):
        suite = _make_suite()
        assert suite.is_fresh() is False
        suite.set_fresh(True)
        assert suite.is_fresh() is True
