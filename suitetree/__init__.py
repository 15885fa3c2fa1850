"""Incremental, lazily materialized tree of test suites and their statuses."""

from suitetree.aggregation.status import parse_framework_status, parse_status
from suitetree.config import TreeConfig
from suitetree.errors import (
    BloomError,
    MalformedResultError,
    SuiteTreeError,
    UnknownStatusError,
)
from suitetree.framework import Framework
from suitetree.logging_config import configure_logging
from suitetree.nodes import MenuItem, Nugget, Suite, SuiteOptions, Test
from suitetree.storage import SnapshotFile

__all__ = [
    "BloomError",
    "Framework",
    "MalformedResultError",
    "MenuItem",
    "Nugget",
    "SnapshotFile",
    "Suite",
    "SuiteOptions",
    "SuiteTreeError",
    "Test",
    "TreeConfig",
    "UnknownStatusError",
    "configure_logging",
    "parse_framework_status",
    "parse_status",
]
