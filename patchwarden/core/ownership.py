"""Patch ownership enforcement.

A patch may only touch files under the caller-declared path prefixes.
Every violation is collected before failing, so the caller can fix an
over-broad patch in one round trip.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from patchwarden.core.diff import TouchedFile
from patchwarden.core.errors import OwnershipConfigError, OwnershipViolationError
from patchwarden.core.paths import normalize_repo_path

logger = logging.getLogger(__name__)


def normalize_prefixes(raw_prefixes: Iterable[str]) -> list[str]:
    """Normalize an allow-list to sorted, unique, slash-terminated prefixes.

    Raises:
        OwnershipConfigError: If a prefix escapes the repository root or is
            absolute, or if no usable prefix remains.
    """
    prefixes: set[str] = set()
    invalid: list[str] = []

    for raw in raw_prefixes:
        candidate = raw.strip().replace("\\", "/")
        if not candidate:
            continue
        normalized = normalize_repo_path(candidate)
        if normalized is None:
            invalid.append(raw)
            continue
        prefixes.add(f"{normalized}/")

    if invalid:
        raise OwnershipConfigError(
            "invalid allowedPathPrefixes:\n- " + "\n- ".join(invalid)
        )
    if not prefixes:
        raise OwnershipConfigError("allowedPathPrefixes is empty")
    return sorted(prefixes)


def is_authorized(path: str, prefixes: Sequence[str]) -> bool:
    """True if ``path`` is a prefix directory itself or lies beneath one."""
    for prefix in prefixes:
        if path == prefix[:-1] or path.startswith(prefix):
            return True
    return False


class OwnershipEnforcer:
    """Accept or reject a set of touched files against an allow-list."""

    def __init__(self, allowed_prefixes: Iterable[str]):
        self.prefixes = normalize_prefixes(allowed_prefixes)

    def violations(self, touched: Iterable[TouchedFile]) -> list[str]:
        """List every violating path, in patch order."""
        found: list[str] = []
        for entry in touched:
            if not entry.valid:
                found.append(f"invalid path in patch: {entry.path}")
            elif not is_authorized(entry.path, self.prefixes):
                found.append(f"unauthorized path: {entry.path}")
        return found

    def enforce(self, touched: Sequence[TouchedFile]) -> list[str]:
        """Check ``touched`` and return the authorized paths.

        Raises:
            OwnershipViolationError: Listing every invalid or unauthorized
                path when at least one is found.
        """
        found = self.violations(touched)
        if found:
            logger.info(
                "Patch rejected: %d ownership violation(s) against prefixes %s",
                len(found),
                self.prefixes,
            )
            raise OwnershipViolationError(found)
        return [entry.path for entry in touched]
