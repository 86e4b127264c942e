"""Lexical path algebra.

Nothing in this module touches the filesystem: symlinks are never resolved
and the current working directory is always passed in by the caller.
Two forms of path are used throughout patchwarden:

- absolute, lexically normalized paths (worktree containment);
- repo-relative, slash-separated paths (ownership matching).
"""

from __future__ import annotations

import os
import re
from pathlib import Path, PurePath

# Drive-letter prefix ("C:", "c:/...") in a slash-normalized path
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")

StrPath = str | os.PathLike[str]


def normalize_lexical(path: StrPath) -> Path:
    """Collapse ``.`` and ``..`` segments without consulting the filesystem.

    A ``..`` pops the previous segment unless there is nothing to pop, the
    previous segment is itself ``..``, or it is the root/drive anchor. In
    those cases the ``..`` is kept so that out-of-bound traversal stays
    visible to containment checks instead of being clamped away.
    """
    pure = PurePath(path)
    anchor = pure.anchor
    out: list[str] = []

    for part in pure.parts:
        if part == ".":
            continue
        if part == "..":
            at_anchor = len(out) == 1 and bool(anchor) and out[0] == anchor
            if out and out[-1] != ".." and not at_anchor:
                out.pop()
            else:
                out.append(part)
            continue
        out.append(part)

    return Path(*out) if out else Path(".")


def to_absolute(path: StrPath, cwd: StrPath) -> Path:
    """Return the absolute, lexically normalized form of ``path``.

    Relative paths are joined onto ``cwd`` first. ``cwd`` must be absolute.
    """
    candidate = Path(path)
    if candidate.is_absolute():
        return normalize_lexical(candidate)

    base = Path(cwd)
    if not base.is_absolute():
        raise ValueError(f"cwd must be an absolute path, got: {cwd}")
    return normalize_lexical(base / candidate)


def is_contained(root: StrPath, candidate: StrPath, cwd: StrPath) -> bool:
    """True if ``candidate`` is ``root`` or lies beneath it.

    Comparison is by whole path segments, so ``/repo-old`` is not inside
    ``/repo``.
    """
    root_abs = to_absolute(root, cwd)
    candidate_abs = to_absolute(candidate, cwd)
    return candidate_abs == root_abs or root_abs in candidate_abs.parents


def normalize_repo_path(raw: str) -> str | None:
    """Normalize a path taken from a patch to canonical repo-relative form.

    ./a.py, a.py and src/../a.py all normalize to "a.py".

    Returns:
        The slash-separated repo-relative path, or None if the path is
        absolute, carries a drive letter or NUL byte, pops past the
        repository root, or collapses to nothing.
    """
    posix = raw.replace("\\", "/")
    if not posix or "\x00" in posix:
        return None
    if posix.startswith("/") or _DRIVE_PREFIX.match(posix):
        return None

    stack: list[str] = []
    for part in posix.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not stack:
                return None
            stack.pop()
            continue
        stack.append(part)

    if not stack:
        return None
    return "/".join(stack)
