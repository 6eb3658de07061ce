"""Path containment checks for directory-restricted writes."""

from __future__ import annotations

import os
from pathlib import Path


def has_path_traversal(path: str) -> bool:
    """Detect ``..`` segments and home-directory expansion.

    Absolute paths are not rejected here; :func:`is_path_within` decides
    whether they land inside the allowed root.
    """
    if not isinstance(path, str) or not path:
        return True
    if path.startswith("~"):
        return True
    parts = path.replace("\\", "/").split("/")
    return ".." in parts


def _resolve_existing_prefix(path: Path) -> Path:
    """Resolve the longest existing prefix of *path*, following symlinks.

    The non-existing remainder is re-attached unchanged, so a target that
    does not exist yet still resolves through symlinked parents.
    """
    path = Path(os.path.abspath(path))
    missing: list[str] = []
    current = path
    while not current.exists():
        if current.parent == current:
            break
        missing.append(current.name)
        current = current.parent
    resolved = current.resolve()
    for name in reversed(missing):
        resolved = resolved / name
    return resolved


def is_path_within(path: str | Path, root: str | Path, *, base: str | Path | None = None) -> bool:
    """True when *path* resolves to *root* or a location beneath it.

    Relative paths are taken relative to *base* (default: the process
    working directory).
    """
    raw = str(path)
    if has_path_traversal(raw):
        return False

    base_dir = Path(base) if base is not None else Path.cwd()
    target = Path(raw)
    if not target.is_absolute():
        target = base_dir / target
    root_path = Path(root)
    if not root_path.is_absolute():
        root_path = base_dir / root_path

    resolved_target = str(_resolve_existing_prefix(target))
    resolved_root = str(_resolve_existing_prefix(root_path))

    # Separator-aware so /allowed never matches /allowed-other
    root_prefix = resolved_root if resolved_root.endswith(os.sep) else resolved_root + os.sep
    return resolved_target == resolved_root or resolved_target.startswith(root_prefix)
