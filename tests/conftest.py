# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the patchwarden test suite.

This module provides foundational fixtures used across all test modules:
- Temporary repositories (plain directories and real git repositories)
- A worktree root that lives OUTSIDE the repository
- Sample unified diffs
- Default configuration and engine instances

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from patchwarden.core.config import KernelConfig
from patchwarden.core.engine import KernelEngine
from patchwarden.core.git import GitClient
from patchwarden.sandbox.executor import ExecutionResult

# =============================================================================
# Repository and File System Fixtures
# =============================================================================


@pytest.fixture
def temp_repo(tmp_path: Path) -> Path:
    """Create a repository directory with a basic file structure (no git).

    Creates:
        - repo/src/lib.py
        - repo/src/util.py
        - repo/docs/guide.md
        - repo/README.md

    Returns:
        Path to the repository root (tmp_path / "repo").
    """
    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "docs").mkdir()
    (repo / "src" / "lib.py").write_text("def answer():\n    return 41\n")
    (repo / "src" / "util.py").write_text("def helper(x):\n    return x * 2\n")
    (repo / "docs" / "guide.md").write_text("# Guide\n")
    (repo / "README.md").write_text("# Test Project\n")
    return repo


def _git(cwd: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )


@pytest.fixture
def repo_with_git(temp_repo: Path) -> Path:
    """Create a temporary repository with actual git initialization.

    WARNING: Runs actual git commands. Slower than temp_repo.
    Only use when you need real git operations (worktrees, commits, etc.).

    Returns:
        Path to git-initialized repository with one commit.
    """
    try:
        _git(temp_repo, "init")
        _git(temp_repo, "config", "user.email", "test@example.com")
        _git(temp_repo, "config", "user.name", "Test User")
        _git(temp_repo, "config", "commit.gpgsign", "false")
        _git(temp_repo, "add", ".")
        _git(temp_repo, "commit", "-m", "Initial commit")
    except (subprocess.CalledProcessError, FileNotFoundError):
        pytest.skip("Git not available")
    return temp_repo


@pytest.fixture
def head_sha(repo_with_git: Path) -> str:
    """HEAD commit of repo_with_git."""
    return _git(repo_with_git, "rev-parse", "HEAD").stdout.strip()


@pytest.fixture
def worktrees_root(tmp_path: Path) -> Path:
    """Directory for worktrees, a sibling of the repository (never inside it)."""
    return tmp_path / "worktrees"


@pytest.fixture
def git_helper():
    """Run git in a directory, raising on failure."""
    return _git


# =============================================================================
# Diff Fixtures
# =============================================================================


MODIFY_LIB_DIFF = """\
diff --git a/src/lib.py b/src/lib.py
index 1111111..2222222 100644
--- a/src/lib.py
+++ b/src/lib.py
@@ -1,2 +1,2 @@
 def answer():
-    return 41
+    return 42
"""

ADD_README_LINE_DIFF = """\
diff --git a/README.md b/README.md
index 3333333..4444444 100644
--- a/README.md
+++ b/README.md
@@ -1 +1,2 @@
 # Test Project
+More text.
"""


@pytest.fixture
def modify_lib_diff() -> str:
    """A diff that changes src/lib.py in temp_repo."""
    return MODIFY_LIB_DIFF


@pytest.fixture
def readme_diff() -> str:
    """A diff that changes README.md in temp_repo (outside src/)."""
    return ADD_README_LINE_DIFF


# =============================================================================
# Engine and Mock Fixtures
# =============================================================================


@pytest.fixture
def config() -> KernelConfig:
    """Default configuration."""
    return KernelConfig()


@pytest.fixture
def engine(config: KernelConfig, tmp_path: Path) -> KernelEngine:
    """Engine rooted at tmp_path as its working directory."""
    return KernelEngine(config, cwd=tmp_path)


@pytest.fixture
def mock_executor() -> MagicMock:
    """Executor double whose run() succeeds with empty output by default."""
    executor = MagicMock()
    executor.run.return_value = ExecutionResult(returncode=0, stdout="", stderr="")
    return executor


@pytest.fixture
def mock_git(mock_executor: MagicMock) -> GitClient:
    """GitClient backed by mock_executor."""
    return GitClient(executor=mock_executor)
