"""Path arithmetic for suites run locally or on a remote host.

Suite files reported by a remote run carry the remote mount point as
prefix. These helpers re-base them onto the local scan root. All paths use
POSIX semantics, since remote paths always do.
"""

from __future__ import annotations

import posixpath


def normalize_remote_path(remote_path: str | None) -> str:
    """Ensure a remote mount point starts with a slash."""
    remote_path = remote_path or ""
    return remote_path if remote_path.startswith("/") else "/" + remote_path


def join(*parts: str) -> str:
    """Join and normalize path segments.

    Unlike ``posixpath.join``, an absolute segment does not discard the
    segments before it: ``join("/srv", "/proj")`` is ``/srv/proj``.
    """
    joined = "/".join(part for part in parts if part)
    return posixpath.normpath(joined) if joined else "."


def relative(start: str, target: str) -> str:
    """Get ``target`` relative to ``start``, or ``""`` when they are equal."""
    rel = posixpath.relpath(target, start)
    return "" if rel == "." else rel


def file_path(
    file: str, root: str, path: str, runs_in_remote: bool, remote_path: str
) -> str:
    """Get the local path of a suite file.

    Args:
        file: Suite file as reported by the run.
        root: Local scan root.
        path: Scan path, relative to the root.
        runs_in_remote: Whether the run happens on a remote host.
        remote_path: Remote mount point of the project.

    Returns:
        ``file`` itself for local runs, otherwise ``file`` re-based from
        ``remote_path/path`` onto ``root``.
    """
    if not runs_in_remote:
        return file
    return join(root, relative(join(remote_path, path), file))


def relative_path(
    file: str, root: str, path: str, runs_in_remote: bool, remote_path: str
) -> str:
    """Get a suite file relative to the directory it was scanned from.

    A remote run mounted at ``/`` has no prefix to strip, so its files are
    returned verbatim.
    """
    if runs_in_remote and remote_path == "/":
        return file
    start = join(remote_path, path) if runs_in_remote else root
    return relative(start, file)
