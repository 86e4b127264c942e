"""Request and response schemas for the five patchwarden commands.

Uses Pydantic with camelCase aliases to match the JSON wire format.
Unknown request fields are ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

SUMMARY_VERSION = 1


class WireModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be empty")
    return value


def _reject_option_like(value: str) -> str:
    # Leading "-" would be parsed by git as an option
    if value.startswith("-"):
        raise ValueError("must not start with '-'")
    return value


# --- worktree.ensure ---


class WorktreeEnsureRequest(WireModel):
    repo_root: str
    worktree_path: str
    branch: str
    base_sha: str

    @field_validator("repo_root", "worktree_path", "branch", "base_sha")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("branch", "base_sha")
    @classmethod
    def _not_option(cls, value: str) -> str:
        return _reject_option_like(value)


class WorktreeEnsureResponse(WireModel):
    worktree_path: str


# --- worktree.remove ---


class WorktreeRemoveRequest(WireModel):
    repo_root: str
    worktree_path: str
    force: bool = False

    @field_validator("repo_root", "worktree_path")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_text(value)


class WorktreeRemoveResponse(WireModel):
    ok: bool = True


# --- patch.apply ---


class PatchApplyRequest(WireModel):
    """An empty allowedPathPrefixes list is accepted here and rejected by
    the ownership check as a configuration error."""

    worktree_path: str
    patch_path: str
    allowed_path_prefixes: list[str]

    @field_validator("worktree_path", "patch_path")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_text(value)


class PatchApplyResponse(WireModel):
    touched_files: list[str] = Field(default_factory=list)


# --- git.commit_all ---


class CommitAllRequest(WireModel):
    repo_root: str
    message: str

    @field_validator("repo_root", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_text(value)


class CommitAllResponse(WireModel):
    sha: str


# --- verify.run ---


class VerifyCommand(WireModel):
    """A named shell command to run in the worktree."""

    name: str
    command: str

    @field_validator("name", "command")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_text(value)


class VerifyRunRequest(WireModel):
    worktree_path: str
    out_dir: str
    commands: list[VerifyCommand]

    @field_validator("worktree_path", "out_dir")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _require_text(value)


class VerifyResult(WireModel):
    """Captured outcome of one verification command."""

    name: str
    command: str
    ok: bool
    exit_code: int
    output_path: str


class VerifySummary(WireModel):
    """Aggregate verification outcome; also persisted as summary.json."""

    version: int = SUMMARY_VERSION
    ran_at: str
    commands: list[VerifyResult] = Field(default_factory=list)
    ok: bool
