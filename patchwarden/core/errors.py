"""Error hierarchy for patchwarden operations.

Every failure that reaches the CLI is a PatchWardenError. The CLI prints
str(error) verbatim to stderr and exits 1; nothing is retried.
"""

from __future__ import annotations


class PatchWardenError(Exception):
    """Base class for all reportable failures."""

    pass


class InputError(PatchWardenError):
    """Missing, empty or malformed request input."""

    pass


class ConfigError(InputError):
    """Invalid patchwarden configuration."""

    pass


class PolicyViolationError(PatchWardenError):
    """A safety policy was violated.

    CRITICAL: Policy violations are FATAL and are never retried.
    """

    pass


class ContainmentError(PolicyViolationError):
    """A worktree path lies inside the repository it is derived from."""

    pass


class UnsafeWorktreeError(PolicyViolationError):
    """An existing worktree path cannot be used safely."""

    pass


class OwnershipConfigError(PolicyViolationError):
    """The allow-list of path prefixes is empty or invalid."""

    pass


class OwnershipViolationError(PolicyViolationError):
    """A patch touches paths outside the allow-list."""

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__(
            "patch ownership check failed:\n- " + "\n- ".join(self.violations)
        )


class DiffFormatError(PatchWardenError):
    """Patch text is not a parsable unified diff."""

    pass


class GitCommandError(PatchWardenError):
    """A git invocation failed, could not be launched, or timed out."""

    def __init__(
        self,
        message: str,
        args: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.args_ = list(args or [])
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class EvidenceIOError(PatchWardenError):
    """A directory or file could not be created, read or written."""

    def __init__(self, message: str, path: object):
        self.path = path
        super().__init__(message)


class VerificationLaunchError(PatchWardenError):
    """The host shell could not be started for a verification command."""

    pass


class SummarySchemaError(PatchWardenError):
    """A verification summary does not match the bundled summary schema."""

    pass
