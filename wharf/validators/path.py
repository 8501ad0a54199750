"""Path validation and authorization for deployments.

Two layers:
- Syntactic: request-supplied subdirectories and archive entry names must be
  relative and free of parent-directory segments.
- Authorization: the normalized target directory must equal, or descend
  from, one of the identity's authorized roots, all interpreted relative to
  the upload base directory.

Predicates here never raise; anything ambiguous is a deny.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from wharf.errors import InvalidPathError


def is_valid_subdirectory(subdir: str) -> bool:
    """Check a request-supplied subdirectory string.

    Empty string is valid and means "the upload base itself".
    """
    if not isinstance(subdir, str):
        return False
    if "\x00" in subdir:
        return False
    return not (".." in subdir or subdir.startswith("/"))


def _normalize(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


def _within(path: str, root: str) -> bool:
    # Separator-terminated prefix so /data/app does not match /data/app2
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def as_root_list(roots: str | Iterable[str | None] | None) -> list[str | None]:
    """Normalize a configured roots value to an ordered list.

    A missing entry becomes ``[None]``, a root that never matches.
    """
    if roots is None:
        return [None]
    if isinstance(roots, str):
        return [roots]
    return list(roots)


def resolve_root(base_dir: str | Path, root: str) -> str | None:
    """Resolve an authorized root against the upload base.

    Absolute roots are still interpreted relative to the base. Roots that
    escape the base resolve to None.
    """
    base = _normalize(str(base_dir))
    resolved = _normalize(os.path.join(base, root.lstrip("/")))
    if not _within(resolved, base):
        return None
    return resolved


def resolve_target_dir(base_dir: str | Path, subdir: str) -> Path:
    """Absolute, normalized target directory for a subdirectory string."""
    return Path(_normalize(os.path.join(str(base_dir), subdir or "")))


def is_authorized(
    base_dir: str | Path,
    subdir: str,
    authorized_roots: str | Iterable[str | None] | None,
) -> bool:
    """Decide whether ``base_dir/subdir`` falls under an authorized root."""
    try:
        if not is_valid_subdirectory(subdir or ""):
            return False
        base = _normalize(str(base_dir))
        target = str(resolve_target_dir(base, subdir))
        if not _within(target, base):
            return False

        for root in as_root_list(authorized_roots):
            if not isinstance(root, str):
                continue
            resolved_root = resolve_root(base, root)
            if resolved_root is not None and _within(target, resolved_root):
                return True
        return False
    except (TypeError, ValueError):
        return False


def resolve_script_path(
    base_dir: str | Path, root: str | None, script_path: str
) -> Path | None:
    """Absolute path of a script under one authorized root.

    Returns None when the root is missing or escapes the base, or when the
    script path is malformed or leaves the root.
    """
    if not isinstance(root, str) or not script_path or not is_valid_subdirectory(script_path):
        return None
    resolved_root = resolve_root(base_dir, root)
    if resolved_root is None:
        return None
    script = _normalize(os.path.join(resolved_root, script_path))
    if script == resolved_root or not _within(script, resolved_root):
        return None
    return Path(script)


def validate_relative_path(path: str, *, field_name: str = "path") -> str:
    """Validate a relative path such as an archive entry name.

    Rules:
    1. Must not be empty
    2. Must not be absolute (start with /)
    3. Must not contain null bytes
    4. Must not contain a ".." component anywhere

    Backslashes are treated as separators, since archives built on Windows
    use them.

    Returns:
        The normalized path ("./a//b" -> "a/b")

    Raises:
        InvalidPathError: If validation fails
    """
    if not path:
        raise InvalidPathError(
            message=f"{field_name} cannot be empty",
            details={"field": field_name, "reason": "empty_path"},
        )

    if "\x00" in path:
        raise InvalidPathError(
            message=f"{field_name} contains invalid characters",
            details={"field": field_name, "reason": "null_byte"},
        )

    p = PurePosixPath(path.replace("\\", "/"))

    if p.is_absolute():
        raise InvalidPathError(
            message=f"{field_name} must be a relative path",
            details={"field": field_name, "reason": "absolute_path"},
        )

    parts: list[str] = []
    for part in p.parts:
        if part == ".":
            continue
        if part == "..":
            raise InvalidPathError(
                message=f"{field_name} escapes target directory",
                details={"field": field_name, "reason": "path_traversal"},
            )
        parts.append(part)

    if not parts:
        return "."
    return "/".join(parts)
