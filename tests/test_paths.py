"""Tests for lexical path normalization and containment."""

from __future__ import annotations

from pathlib import Path

import pytest

from patchwarden.core.paths import (
    is_contained,
    normalize_lexical,
    normalize_repo_path,
    to_absolute,
)

CWD = Path("/work/cwd")


class TestNormalizeLexical:
    """Tests for normalize_lexical."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("/a/./b", "/a/b"),
            ("/a/b/../c", "/a/c"),
            ("a/b/../../c", "c"),
            ("a/..", "."),
            ("", "."),
        ],
    )
    def test_collapses_dot_segments(self, raw, expected):
        assert normalize_lexical(raw) == Path(expected)

    def test_leading_parent_segments_are_kept(self):
        """Traversal past the start is preserved, not clamped."""
        assert normalize_lexical("../../x") == Path("../../x")
        assert normalize_lexical("a/../../x") == Path("../x")

    def test_parent_at_root_is_kept(self):
        """'..' directly under the root marker stays visible."""
        assert normalize_lexical("/..") == Path("/..")
        assert normalize_lexical("/../etc") == Path("/../etc")

    @pytest.mark.parametrize(
        "raw",
        ["/a/./b/../c", "../x/./../y", "a/b/c/../../..", "/..", "./x/", "x//y"],
    )
    def test_idempotent(self, raw):
        once = normalize_lexical(raw)
        assert normalize_lexical(once) == once

    def test_no_filesystem_access(self, tmp_path):
        """Symlinks are not resolved."""
        target = tmp_path / "target"
        target.mkdir()
        link = tmp_path / "link"
        link.symlink_to(target)

        assert normalize_lexical(link / "file") == link / "file"


class TestToAbsolute:
    """Tests for to_absolute."""

    def test_relative_joined_with_cwd(self):
        assert to_absolute("sub/../x", CWD) == Path("/work/cwd/x")

    def test_absolute_only_normalized(self):
        assert to_absolute("/other/./y", CWD) == Path("/other/y")

    def test_relative_cwd_rejected(self):
        with pytest.raises(ValueError, match="absolute"):
            to_absolute("x", "relative/cwd")


class TestIsContained:
    """Tests for is_contained."""

    @pytest.mark.parametrize("sub", ["a", "a/b/c", ".worktrees/run-1", "x/../y"])
    def test_join_is_always_contained(self, sub):
        root = Path("/repo")
        assert is_contained(root, root / sub, CWD)

    def test_root_contains_itself(self):
        assert is_contained("/repo", "/repo/", CWD)

    def test_string_prefix_sibling_not_contained(self):
        assert not is_contained("/r", "/repo", CWD)
        assert not is_contained("/repo", "/repo-old/x", CWD)

    def test_traversal_out_of_root_not_contained(self):
        assert not is_contained("/repo", "/repo/../elsewhere", CWD)

    def test_relative_paths_resolved_against_cwd(self):
        assert is_contained("repo", "repo/.worktrees/a", CWD)
        assert is_contained("/work/cwd", "nested", CWD)
        assert not is_contained("repo", "../repo/x", CWD)


class TestNormalizeRepoPath:
    """Tests for normalize_repo_path."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("src/lib.py", "src/lib.py"),
            ("./src/lib.py", "src/lib.py"),
            ("src//lib.py", "src/lib.py"),
            ("src/../README.md", "README.md"),
            ("src\\win\\file.txt", "src/win/file.txt"),
        ],
    )
    def test_valid(self, raw, expected):
        assert normalize_repo_path(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "/etc/passwd",
            "\\\\server\\share",
            "C:/Windows/system32",
            "c:relative",
            "../../etc/passwd",
            "src/../../escape",
            ".",
            "",
            "bad\x00name",
        ],
    )
    def test_invalid(self, raw):
        assert normalize_repo_path(raw) is None
