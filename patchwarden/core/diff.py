"""Extract the set of files a unified diff would touch.

Only file-level headers are interpreted; hunk lines are never read as headers.
Each line is either a section header line (before the first ``@@`` of a
section), hunk content, or a line between sections. Hunk extents come from
the line counts in each ``@@ -a,b +c,d @@`` header, so a file header
hidden after the hunks of a section is still seen. ``git apply`` honors a
plain ``---``/``+++`` pair anywhere between sections; those are recorded
as sections too.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from patchwarden.core.errors import DiffFormatError
from patchwarden.core.paths import normalize_repo_path

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"
GIT_HEADER = "diff --git "
_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,(\d+))? \+\d+(?:,(\d+))? @@")

# C escapes git uses when quoting paths with unusual characters
_SIMPLE_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


@dataclass(frozen=True)
class TouchedFile:
    """A path named by a patch.

    Attributes:
        path: Repo-relative normalized path when valid; the original,
              unmodified string from the patch when invalid.
        valid: False if the path is absolute, has a drive letter, or
               escapes the repository root.
    """

    path: str
    valid: bool


@dataclass
class _Section:
    """Header state for one file section (``diff --git`` or a plain ---/+++ pair)."""

    line_no: int
    header_before: str
    header_after: str
    before: str | None = None
    after: str | None = None
    rename_from: str | None = None
    rename_to: str | None = None
    deleted: bool = False
    created: bool = False
    copied: bool = False
    in_hunks: bool = False

    def touched_paths(self) -> list[str]:
        """Paths this section modifies, before-path first for renames."""
        before = self.before if self.before is not None else self.header_before
        after = self.after if self.after is not None else self.header_after

        if self.rename_from is not None and self.rename_to is not None:
            return [self.rename_from, self.rename_to]
        if self.deleted or after == DEV_NULL:
            return [before]
        if self.created or self.copied or before == DEV_NULL:
            return [after]
        if before != after:
            # Header-only rename (no extended lines): both endpoints change
            return [before, after]
        return [after]


def _read_quoted(text: str) -> tuple[str, str]:
    """Decode a git C-style quoted token at the start of ``text``.

    Returns:
        Tuple of (decoded value, remainder after the closing quote)
    """
    buf = bytearray()
    i = 1
    while i < len(text):
        ch = text[i]
        if ch == '"':
            return buf.decode("utf-8", errors="replace"), text[i + 1 :]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            if nxt in _SIMPLE_ESCAPES:
                buf.append(_SIMPLE_ESCAPES[nxt])
                i += 2
                continue
            octal = text[i + 1 : i + 4]
            if len(octal) == 3 and all(c in "01234567" for c in octal):
                buf.append(int(octal, 8) & 0xFF)
                i += 4
                continue
        buf.extend(ch.encode("utf-8"))
        i += 1
    raise DiffFormatError(f"unterminated quoted path: {text}")


def _unquote(token: str) -> str:
    token = token.strip()
    if token.startswith('"'):
        value, _rest = _read_quoted(token)
        return value
    return token


def _strip_marker(path: str, marker: str) -> str:
    return path[len(marker) :] if path.startswith(marker) else path


def _split_header(rest: str) -> tuple[str, str] | None:
    """Split the path part of a ``diff --git`` line into (a, b) tokens."""
    rest = rest.strip()
    if not rest:
        return None

    if rest.startswith('"'):
        first, remainder = _read_quoted(rest)
        remainder = remainder.strip()
        if not remainder:
            return None
        return first, _unquote(remainder)

    if rest.endswith('"') and ' "' in rest:
        idx = rest.rfind(' "')
        return rest[:idx], _unquote(rest[idx + 1 :])

    # Unquoted: "a/<path> b/<path>". Paths may contain spaces, so prefer the
    # split whose halves name the same file.
    candidates = []
    start = 0
    while True:
        idx = rest.find(" b/", start)
        if idx == -1:
            break
        candidates.append((rest[:idx], rest[idx + 1 :]))
        start = idx + 1
    for first, second in candidates:
        if _strip_marker(first, "a/") == _strip_marker(second, "b/"):
            return first, second
    if candidates:
        return candidates[0]

    tokens = rest.split()
    if len(tokens) != 2:
        return None
    return tokens[0], tokens[1]


def _strip_component(path: str) -> str:
    """Drop the leading path component, as ``git apply`` does by default (-p1).

    Absolute paths and /dev/null are returned unchanged.
    """
    if path == DEV_NULL or path.startswith("/"):
        return path
    _head, sep, tail = path.partition("/")
    return tail if sep else path


def _file_line_path(value: str) -> str:
    """Path from a ``---``/``+++`` line, dropping any trailing timestamp."""
    value = value.split("\t", 1)[0] if not value.startswith('"') else value
    return _strip_component(_unquote(value))


def _hunk_counts(line: str, line_no: int) -> tuple[int, int]:
    """Old and new line counts declared by an ``@@`` hunk header."""
    match = _HUNK_HEADER.match(line)
    if match is None:
        raise DiffFormatError(f"malformed hunk header at line {line_no}: {line}")
    old_count, new_count = match.groups()
    return int(old_count or 1), int(new_count or 1)


class DiffPathExtractor:
    """Parse unified diff headers into an ordered list of TouchedFile.

    Valid paths are deduplicated keeping first-occurrence order. Invalid
    paths are recorded verbatim every time they occur.
    """

    def extract(self, text: str) -> list[TouchedFile]:
        """Return the files touched by ``text``.

        Raises:
            DiffFormatError: If a header or hunk is malformed or truncated,
                or if a non-empty document contains no ``diff --git`` header.
        """
        if not text.strip():
            return []

        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()

        files: list[TouchedFile] = []
        seen: set[str] = set()
        section: _Section | None = None
        git_sections = 0
        old_left = new_left = 0
        hunk_start = 0

        for line_no, raw_line in enumerate(lines, start=1):
            line = raw_line.rstrip("\r")

            if old_left or new_left:
                old_left, new_left = self._hunk_line(line, line_no, old_left, new_left)
                continue

            if line.startswith(GIT_HEADER):
                if section is not None:
                    self._close(section, files, seen)
                section = self._open(line, line_no)
                git_sections += 1
                continue

            if line.startswith("@@"):
                if section is None:
                    raise DiffFormatError(f"hunk without file header at line {line_no}")
                if not section.in_hunks:
                    self._start_hunks(section)
                old_left, new_left = _hunk_counts(line, line_no)
                hunk_start = line_no
                continue

            if section is not None and not section.in_hunks:
                self._header_line(section, line)
                continue

            # Between sections: git apply still honors a plain ---/+++ pair here
            if line.startswith("--- "):
                if section is not None:
                    self._close(section, files, seen)
                before = _file_line_path(line[4:])
                section = _Section(
                    line_no=line_no,
                    header_before=before,
                    header_after=before,
                    before=before,
                )
            elif line.startswith("+++ "):
                raise DiffFormatError(f"'+++' line without '---' line at line {line_no}")

        if old_left or new_left:
            raise DiffFormatError(
                f"truncated hunk starting at line {hunk_start}: "
                f"{old_left} old and {new_left} new line(s) missing"
            )
        if section is not None:
            self._close(section, files, seen)

        if git_sections == 0:
            raise DiffFormatError(
                'patch has content but no "diff --git" headers (not a unified diff?)'
            )
        return files

    def _open(self, line: str, line_no: int) -> _Section:
        tokens = _split_header(line[len(GIT_HEADER) :])
        if tokens is None:
            raise DiffFormatError(f"malformed diff header at line {line_no}: {line}")
        first, second = tokens
        return _Section(
            line_no=line_no,
            header_before=_strip_component(first),
            header_after=_strip_component(second),
        )

    def _start_hunks(self, section: _Section) -> None:
        if section.before is None or section.after is None:
            raise DiffFormatError(
                f"truncated file header for diff at line {section.line_no}: "
                "hunk without '---'/'+++' lines"
            )
        section.in_hunks = True

    def _hunk_line(
        self, line: str, line_no: int, old_left: int, new_left: int
    ) -> tuple[int, int]:
        if line.startswith("\\"):
            # "\ No newline at end of file"
            return old_left, new_left
        marker = line[:1]
        if marker in (" ", ""):
            old_left, new_left = old_left - 1, new_left - 1
        elif marker == "-":
            old_left -= 1
        elif marker == "+":
            new_left -= 1
        else:
            raise DiffFormatError(f"corrupt hunk at line {line_no}: {line}")
        if old_left < 0 or new_left < 0:
            raise DiffFormatError(
                f"corrupt hunk at line {line_no}: more lines than the hunk header declares"
            )
        return old_left, new_left

    def _header_line(self, section: _Section, line: str) -> None:
        if line.startswith("--- "):
            section.before = _file_line_path(line[4:])
        elif line.startswith("+++ "):
            if section.before is None:
                raise DiffFormatError(
                    f"truncated file header for diff at line {section.line_no}: "
                    "'+++' line without '---' line"
                )
            section.after = _file_line_path(line[4:])
        elif line.startswith("deleted file mode"):
            section.deleted = True
        elif line.startswith("new file mode"):
            section.created = True
        elif line.startswith("rename from "):
            section.rename_from = _unquote(line[len("rename from ") :])
        elif line.startswith("rename to "):
            section.rename_to = _unquote(line[len("rename to ") :])
        elif line.startswith("copy from ") or line.startswith("copy to "):
            section.copied = True

    def _close(self, section: _Section, files: list[TouchedFile], seen: set[str]) -> None:
        if section.before is not None and section.after is None:
            raise DiffFormatError(
                f"truncated file header for diff at line {section.line_no}: "
                "missing '+++' line"
            )

        for raw in section.touched_paths():
            normalized = normalize_repo_path(raw)
            if normalized is None:
                logger.debug("Invalid path in patch: %r", raw)
                files.append(TouchedFile(path=raw, valid=False))
                continue
            if normalized in seen:
                continue
            seen.add(normalized)
            files.append(TouchedFile(path=normalized, valid=True))


def extract_touched_files(text: str) -> list[TouchedFile]:
    """Convenience wrapper around DiffPathExtractor().extract()."""
    return DiffPathExtractor().extract(text)
