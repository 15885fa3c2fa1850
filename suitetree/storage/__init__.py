"""Persistence of suite tree snapshots."""

from suitetree.storage.snapshot import SnapshotFile

__all__ = ["SnapshotFile"]
