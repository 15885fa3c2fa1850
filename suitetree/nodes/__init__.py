"""Suite tree nodes: lazy lifecycle, tests, suites and their path helpers."""

from suitetree.nodes.nugget import Nugget
from suitetree.nodes.suite import MenuItem, Suite, SuiteOptions
from suitetree.nodes.test import Test

__all__ = [
    "MenuItem",
    "Nugget",
    "Suite",
    "SuiteOptions",
    "Test",
]
