"""Git worktree safety guard.

Every decision is re-derived from git at call time; nothing about a
worktree or branch is cached between requests:

1. Containment: a worktree must never live at or under its repo root
   (git would check the worktree out into itself, recursively).
2. Existence: an existing path must already be a git checkout, otherwise
   the request fails instead of overwriting it.
3. Only then: create the branch if absent and materialize the worktree.

Callers running concurrently must pick distinct worktree paths; two
callers racing on the same path are not serialized here.
"""

from __future__ import annotations

import logging
from pathlib import Path

from patchwarden.core.errors import ContainmentError, EvidenceIOError, UnsafeWorktreeError
from patchwarden.core.git import GitClient
from patchwarden.core.paths import StrPath, is_contained, to_absolute

logger = logging.getLogger(__name__)


class WorktreeGuard:
    """Create and remove isolated worktrees after safety checks."""

    def __init__(self, git: GitClient, cwd: Path):
        self.git = git
        self.cwd = cwd

    def assert_external(self, repo_root: StrPath, worktree_path: StrPath) -> None:
        """Refuse a worktree path at or under the repository root.

        Raises:
            ContainmentError: If the worktree would be nested in the repo.
        """
        if is_contained(repo_root, worktree_path, self.cwd):
            raise ContainmentError(
                "Refusing to create worktree inside repo root (would recurse): "
                f"repoRoot={to_absolute(repo_root, self.cwd)} "
                f"worktreePath={to_absolute(worktree_path, self.cwd)}"
            )

    def ensure(
        self,
        repo_root: StrPath,
        worktree_path: StrPath,
        branch: str,
        base_sha: str,
    ) -> Path:
        """Make sure an isolated checkout of ``branch`` exists at ``worktree_path``.

        Idempotent: a second call against a path that is already a valid
        checkout succeeds without touching git state.

        Returns:
            The absolute, lexically normalized worktree path

        Raises:
            ContainmentError: Worktree path inside the repository root
            UnsafeWorktreeError: Path is a symlink, or exists but is not a checkout
            GitCommandError: Branch creation or ``git worktree add`` failed
            EvidenceIOError: Parent directories could not be created
        """
        self.assert_external(repo_root, worktree_path)
        repo = to_absolute(repo_root, self.cwd)
        target = to_absolute(worktree_path, self.cwd)

        if target.is_symlink():
            raise UnsafeWorktreeError(
                f"SECURITY: Worktree path is a symlink, refusing to use it: {target}"
            )

        if target.exists():
            if not self.git.is_worktree(target):
                raise UnsafeWorktreeError(
                    f"Worktree path exists but is not a git worktree: {target}"
                )
            logger.info("Reusing existing worktree at %s", target)
            return target

        self.git.ensure_branch_at(repo, branch, base_sha)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EvidenceIOError(
                f"failed to create worktree parent dir {target.parent}: {e}", target.parent
            ) from e

        self.git.worktree_add(repo, target, branch)
        logger.info("Created worktree %s on branch %s", target, branch)
        return target

    def remove(self, repo_root: StrPath, worktree_path: StrPath, force: bool = False) -> None:
        """Remove a worktree through git.

        A dirty checkout is only removed with ``force``. git's refusal is
        surfaced verbatim as a GitCommandError.
        """
        repo = to_absolute(repo_root, self.cwd)
        target = to_absolute(worktree_path, self.cwd)
        self.git.worktree_remove(repo, target, force=force)
        logger.info("Removed worktree %s", target)
