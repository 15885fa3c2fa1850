"""Status aggregation: derive a parent's status from its children's."""

from suitetree.aggregation.status import (
    FRAMEWORK_STATUSES,
    STATUSES,
    parse_framework_status,
    parse_status,
)

__all__ = [
    "FRAMEWORK_STATUSES",
    "STATUSES",
    "parse_framework_status",
    "parse_status",
]
