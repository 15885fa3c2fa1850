"""Suite tree configuration file management.

Reads and writes the JSON file holding the scan options applied to every
suite and the behaviour of the run container.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from suitetree.nodes.suite import SuiteOptions


logger = structlog.get_logger(__name__)

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "root": ".",
    "path": "",
    "runs_in_remote": False,
    "remote_path": "",
    "wither_collapsed": True,
    "snapshot_format": "yaml",
    "log_level": "INFO",
}

SNAPSHOT_FORMATS = frozenset({"yaml", "json"})


class TreeConfig:
    """Manages the suite tree JSON configuration file."""

    def __init__(self, path: Path | None = None, **overrides: Any) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()
        self._data.update(overrides)

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("config_unreadable", path=str(self.path), error=str(e))
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def root(self) -> str:
        """Get the local scan root."""
        return str(self._data.get("root") or DEFAULT_CONFIG["root"])

    @property
    def scan_path(self) -> str:
        """Get the scan path, relative to the root."""
        return str(self._data.get("path") or "")

    @property
    def runs_in_remote(self) -> bool:
        """Whether tests run on a remote host."""
        return bool(self._data.get("runs_in_remote", False))

    @property
    def remote_path(self) -> str:
        """Get the remote mount point of the project."""
        return str(self._data.get("remote_path") or "")

    @property
    def wither_collapsed(self) -> bool:
        """Whether collapsed suites are withered after each debrief."""
        return bool(
            self._data.get("wither_collapsed", DEFAULT_CONFIG["wither_collapsed"])
        )

    @property
    def snapshot_format(self) -> str:
        """Get the snapshot file format (yaml or json)."""
        fmt = str(
            self._data.get("snapshot_format", DEFAULT_CONFIG["snapshot_format"])
        ).lower()
        if fmt not in SNAPSHOT_FORMATS:
            raise ValueError(
                f"Invalid snapshot format '{fmt}'. Must be one of: {sorted(SNAPSHOT_FORMATS)}"
            )
        return fmt

    @property
    def log_level(self) -> str:
        """Get the logging level name."""
        return str(self._data.get("log_level") or DEFAULT_CONFIG["log_level"])

    def set_config(
        self,
        root: str | None = None,
        path: str | None = None,
        runs_in_remote: bool | None = None,
        remote_path: str | None = None,
    ) -> None:
        """Update scan options."""
        if root is not None:
            self._data["root"] = root
        if path is not None:
            self._data["path"] = path
        if runs_in_remote is not None:
            self._data["runs_in_remote"] = runs_in_remote
        if remote_path is not None:
            self._data["remote_path"] = remote_path

    def suite_options(self) -> SuiteOptions:
        """Build the options every suite is created with."""
        return SuiteOptions(
            path=self.scan_path,
            root=self.root,
            runs_in_remote=self.runs_in_remote,
            remote_path=self.remote_path,
        )
