"""Snapshot file management for persisted suite trees.

Reads and writes the output of ``Framework.persist()`` as YAML or JSON, so
a tree can be restored without re-running every suite.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml


logger = structlog.get_logger(__name__)

VALID_FORMATS = frozenset({"yaml", "json"})


def _empty() -> dict[str, Any]:
    return {"suites": []}


class SnapshotFile:
    """Manages one snapshot file holding persisted suites."""

    def __init__(self, path: str | Path, fmt: str = "yaml") -> None:
        if fmt not in VALID_FORMATS:
            raise ValueError(
                f"Invalid format '{fmt}'. Must be one of: {sorted(VALID_FORMATS)}"
            )
        self.path = Path(path)
        self.fmt = fmt

    def load(self) -> dict[str, Any]:
        """Read the snapshot.

        Returns:
            Dict with a ``suites`` list. Missing or corrupted files read as
            an empty snapshot.
        """
        if not self.path.exists():
            return _empty()

        try:
            text = self.path.read_text()
            if self.fmt == "yaml":
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError, OSError) as e:
            logger.warning("snapshot_unreadable", path=str(self.path), error=str(e))
            return _empty()

        if not isinstance(data, dict) or not isinstance(data.get("suites"), list):
            logger.warning("snapshot_malformed", path=str(self.path))
            return _empty()

        logger.info("snapshot_loaded", path=str(self.path), suites=len(data["suites"]))
        return data

    def save(self, snapshot: dict[str, Any]) -> None:
        """Write a snapshot, creating parent directories as needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            if self.fmt == "yaml":
                yaml.safe_dump(
                    snapshot,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                )
            else:
                json.dump(snapshot, f, indent=2)
                f.write("\n")
        logger.info(
            "snapshot_saved", path=str(self.path), suites=len(snapshot.get("suites", []))
        )
