"""Thin wrapper around the git executable.

patchwarden decides whether to call git and with which validated
arguments; git itself does the work. Every call runs as
``git -C <dir> ...`` so the process cwd never matters, and every failure
surfaces git's own stderr when it has any.
"""

from __future__ import annotations

import logging
from pathlib import Path

from patchwarden.core.errors import GitCommandError
from patchwarden.sandbox.executor import ExecutionResult, LocalExecutor, SandboxError

logger = logging.getLogger(__name__)


class GitClient:
    """Query-then-act helpers over git. Holds no repository state."""

    def __init__(
        self,
        git_binary: str = "git",
        timeout: float | None = None,
        executor: LocalExecutor | None = None,
    ):
        self.git_binary = git_binary
        self.executor = executor or LocalExecutor(timeout=timeout)

    def run(self, directory: Path, *args: str) -> ExecutionResult:
        """Run ``git -C directory args...``.

        Raises:
            GitCommandError: If git cannot be launched or times out.
        """
        command = [self.git_binary, "-C", str(directory), *args]
        logger.debug("Running %s", command)
        try:
            result = self.executor.run(command)
        except SandboxError as e:
            raise GitCommandError(str(e), args=command) from e
        if result.timed_out:
            raise GitCommandError(
                f"git {args[0]} timed out: {result.stderr}",
                args=command,
                stderr=result.stderr,
            )
        return result

    def check(self, directory: Path, *args: str, fallback: str) -> ExecutionResult:
        """Run git and fail on a non-zero exit.

        Raises:
            GitCommandError: With git's stderr, or ``fallback`` when git
                printed nothing to stderr.
        """
        result = self.run(directory, *args)
        if not result.ok:
            raise GitCommandError(
                result.stderr or fallback,
                args=[self.git_binary, "-C", str(directory), *args],
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    # --- queries ---

    def is_worktree(self, directory: Path) -> bool:
        """True if ``directory`` is the top level of a git work tree.

        A plain directory that merely sits inside some other checkout does
        not count.
        """
        if not directory.is_dir():
            return False
        try:
            result = self.run(directory, "rev-parse", "--is-inside-work-tree", "--show-toplevel")
        except GitCommandError:
            return False
        if not result.ok:
            return False

        lines = result.stdout.splitlines()
        if len(lines) != 2 or lines[0].strip() != "true":
            return False
        return Path(lines[1].strip()).resolve() == directory.resolve()

    def branch_exists(self, repo_root: Path, branch: str) -> bool:
        result = self.run(repo_root, "show-ref", "--verify", "--quiet", f"refs/heads/{branch}")
        return result.returncode == 0

    def head_sha(self, repo_root: Path) -> str:
        result = self.check(repo_root, "rev-parse", "HEAD", fallback="git rev-parse HEAD failed")
        return result.stdout.strip()

    # --- mutations ---

    def ensure_branch_at(self, repo_root: Path, branch: str, base_sha: str) -> None:
        """Create ``branch`` at ``base_sha`` unless it already exists.

        An existing branch is accepted at whatever revision it points to;
        it is never force-reset.
        """
        if self.branch_exists(repo_root, branch):
            logger.info("Branch %s already exists; leaving it as-is", branch)
            return
        self.check(
            repo_root,
            "branch",
            branch,
            base_sha,
            fallback=f"git branch {branch} {base_sha} failed",
        )
        logger.info("Created branch %s at %s", branch, base_sha)

    def worktree_add(self, repo_root: Path, worktree_path: Path, branch: str) -> None:
        self.check(
            repo_root,
            "worktree",
            "add",
            str(worktree_path),
            branch,
            fallback=f"git worktree add failed: {worktree_path}",
        )

    def worktree_remove(self, repo_root: Path, worktree_path: Path, force: bool = False) -> None:
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(str(worktree_path))
        self.check(repo_root, *args, fallback=f"git worktree remove failed: {worktree_path}")

    def apply(self, worktree_path: Path, patch_path: Path, check_only: bool = False) -> None:
        if check_only:
            self.check(
                worktree_path,
                "apply",
                "--check",
                str(patch_path),
                fallback="git apply --check failed",
            )
        else:
            self.check(worktree_path, "apply", str(patch_path), fallback="git apply failed")

    def commit_all(self, repo_root: Path, message: str) -> str:
        """Stage everything, commit, and return the new HEAD sha."""
        self.check(repo_root, "add", "-A", fallback="git add failed")
        self.check(repo_root, "commit", "-m", message, fallback="git commit failed")
        return self.head_sha(repo_root)
