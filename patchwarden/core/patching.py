"""Apply a patch to a worktree only if it stays within its allow-list."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from patchwarden.core.diff import DiffPathExtractor
from patchwarden.core.errors import EvidenceIOError
from patchwarden.core.git import GitClient
from patchwarden.core.ownership import OwnershipEnforcer
from patchwarden.core.paths import StrPath, to_absolute

logger = logging.getLogger(__name__)


class PatchApplier:
    """Gatekeeper in front of ``git apply``.

    Order of checks:
    1. The allow-list is valid and non-empty (even for an empty patch)
    2. An empty patch is a no-op success
    3. Every touched path is valid and authorized
    4. ``git apply --check`` passes
    5. ``git apply``
    """

    def __init__(self, git: GitClient, cwd: Path):
        self.git = git
        self.cwd = cwd
        self.extractor = DiffPathExtractor()

    def apply(
        self,
        worktree_path: StrPath,
        patch_path: StrPath,
        allowed_prefixes: Sequence[str],
    ) -> list[str]:
        """Apply ``patch_path`` inside ``worktree_path``.

        Returns:
            Repo-relative paths the patch touched, in patch order

        Raises:
            OwnershipConfigError: Empty or invalid allow-list
            EvidenceIOError: Patch file unreadable
            DiffFormatError: Patch is not a unified diff
            OwnershipViolationError: Patch touches unauthorized or invalid paths
            GitCommandError: git refused the patch
        """
        enforcer = OwnershipEnforcer(allowed_prefixes)
        worktree = to_absolute(worktree_path, self.cwd)
        patch_file = to_absolute(patch_path, self.cwd)

        try:
            patch_text = patch_file.read_text(encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise EvidenceIOError(
                f"failed to read patch file: {patch_file}: {e}", patch_file
            ) from e

        if not patch_text.strip():
            logger.info("Empty patch %s; nothing to apply", patch_file)
            return []

        touched = self.extractor.extract(patch_text)
        authorized = enforcer.enforce(touched)

        self.git.apply(worktree, patch_file, check_only=True)
        self.git.apply(worktree, patch_file)
        logger.info("Applied %s to %s (%d file(s))", patch_file, worktree, len(authorized))
        return authorized
