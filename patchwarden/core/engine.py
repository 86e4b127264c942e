"""Request dispatch for patchwarden commands.

One request in, one response or one error out. The engine validates the
JSON payload, delegates to the relevant component and serializes the
result. No state survives between requests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from patchwarden.core.config import KernelConfig
from patchwarden.core.errors import InputError
from patchwarden.core.git import GitClient
from patchwarden.core.models import (
    CommitAllRequest,
    CommitAllResponse,
    PatchApplyRequest,
    PatchApplyResponse,
    VerifyRunRequest,
    VerifySummary,
    WorktreeEnsureRequest,
    WorktreeEnsureResponse,
    WorktreeRemoveRequest,
    WorktreeRemoveResponse,
)
from patchwarden.core.patching import PatchApplier
from patchwarden.core.paths import to_absolute
from patchwarden.core.verify import VerificationHarness
from patchwarden.core.workspace import WorktreeGuard

logger = logging.getLogger(__name__)


def format_validation_error(command: str, error: ValidationError) -> str:
    """Render every field error of ``error`` on one line."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
        for err in error.errors()
    )
    return f"invalid input for {command}: {details}"


class KernelEngine:
    """Validate requests and route them to WorktreeGuard, PatchApplier,
    GitClient or VerificationHarness."""

    def __init__(
        self,
        config: KernelConfig,
        cwd: Path,
        git: GitClient | None = None,
        harness: VerificationHarness | None = None,
    ):
        self.config = config
        self.cwd = cwd
        self.git = git or GitClient(git_binary=config.git_binary, timeout=config.git_timeout)
        self.guard = WorktreeGuard(self.git, cwd)
        self.patcher = PatchApplier(self.git, cwd)
        self.harness = harness or VerificationHarness(
            cwd,
            shell=config.verify_shell,
            output_extension=config.output_extension,
        )
        self._handlers: dict[str, tuple[type[BaseModel], Callable[[Any], BaseModel]]] = {
            "worktree.ensure": (WorktreeEnsureRequest, self.worktree_ensure),
            "worktree.remove": (WorktreeRemoveRequest, self.worktree_remove),
            "patch.apply": (PatchApplyRequest, self.patch_apply),
            "git.commit_all": (CommitAllRequest, self.commit_all),
            "verify.run": (VerifyRunRequest, self.verify_run),
        }

    @property
    def commands(self) -> list[str]:
        return list(self._handlers)

    def dispatch(self, command: str, payload: Any) -> dict:
        """Run ``command`` with a decoded JSON ``payload``.

        Raises:
            InputError: Unknown command or payload failing validation
            PatchWardenError: Any failure raised by the handler
        """
        if command not in self._handlers:
            raise InputError(f"unknown command: {command}")
        if not isinstance(payload, dict):
            raise InputError(
                f"invalid input for {command}: expected a JSON object, "
                f"got {type(payload).__name__}"
            )

        request_model, handler = self._handlers[command]
        try:
            request = request_model.model_validate(payload)
        except ValidationError as e:
            raise InputError(format_validation_error(command, e))

        logger.debug("Dispatching %s", command)
        response = handler(request)
        return response.to_wire()

    # --- handlers ---

    def worktree_ensure(self, request: WorktreeEnsureRequest) -> WorktreeEnsureResponse:
        path = self.guard.ensure(
            request.repo_root,
            request.worktree_path,
            request.branch,
            request.base_sha,
        )
        return WorktreeEnsureResponse(worktree_path=str(path))

    def worktree_remove(self, request: WorktreeRemoveRequest) -> WorktreeRemoveResponse:
        self.guard.remove(request.repo_root, request.worktree_path, force=request.force)
        return WorktreeRemoveResponse(ok=True)

    def patch_apply(self, request: PatchApplyRequest) -> PatchApplyResponse:
        touched = self.patcher.apply(
            request.worktree_path,
            request.patch_path,
            request.allowed_path_prefixes,
        )
        return PatchApplyResponse(touched_files=touched)

    def commit_all(self, request: CommitAllRequest) -> CommitAllResponse:
        sha = self.git.commit_all(to_absolute(request.repo_root, self.cwd), request.message)
        return CommitAllResponse(sha=sha)

    def verify_run(self, request: VerifyRunRequest) -> VerifySummary:
        return self.harness.run(request.worktree_path, request.out_dir, request.commands)
