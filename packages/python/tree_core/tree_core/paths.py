"""Child-index paths locating a node inside a nested element list."""

from __future__ import annotations

from typing import Tuple

NodePath = Tuple[int, ...]


def is_within(path: NodePath, ancestor: NodePath) -> bool:
    """True when ``path`` equals ``ancestor`` or lies below it."""

    return len(path) >= len(ancestor) and path[: len(ancestor)] == ancestor


def format_path(path: NodePath) -> str:
    return "/".join(str(index) for index in path) or "/"
