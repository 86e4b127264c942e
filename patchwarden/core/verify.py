"""Verification harness: run commands in a worktree and keep the evidence.

Each command's combined stdout/stderr goes to its own file in the output
directory. The summary is validated, written to summary.json and returned;
the returned object and the file on disk are the same document, so a
caller that crashes after invocation still has the record.

A failing command does not stop the run. Only a failure to launch the
shell at all aborts it.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

import jsonschema

from patchwarden.core.errors import (
    EvidenceIOError,
    SummarySchemaError,
    VerificationLaunchError,
)
from patchwarden.core.models import VerifyCommand, VerifyResult, VerifySummary
from patchwarden.core.paths import StrPath, to_absolute
from patchwarden.sandbox.executor import LocalExecutor, SandboxError, default_shell

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent.parent
SUMMARY_FILENAME = "summary.json"
SUMMARY_SCHEMA_PATH = PACKAGE_DIR / "config" / "verify_summary_schema.json"
PLACEHOLDER_NAME = "command"

_UNSAFE_RUN = re.compile(r"[^a-z0-9._-]+")


def safe_name(name: str) -> str:
    """Derive a filesystem-safe file stem from a command name.

    "Unit Tests (fast)" -> "unit-tests-fast". Empty results become
    "command".
    """
    collapsed = _UNSAFE_RUN.sub("-", name.strip().lower())
    return collapsed.strip("-") or PLACEHOLDER_NAME


def now_rfc3339() -> str:
    """Current UTC time, e.g. 2024-01-31T12:00:00.123Z."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def load_summary_schema(path: Path = SUMMARY_SCHEMA_PATH) -> dict | None:
    if not path.exists():
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_summary(summary: dict, out_dir: Path) -> Path:
    """Write ``summary`` as pretty-printed, newline-terminated JSON."""
    summary_path = out_dir / SUMMARY_FILENAME
    try:
        summary_path.write_text(json.dumps(summary, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise EvidenceIOError(f"failed to write {summary_path}: {e}", summary_path) from e
    return summary_path


class VerificationHarness:
    """Run verification commands sequentially, in the order given."""

    def __init__(
        self,
        cwd: Path,
        shell: Sequence[str] | None = None,
        output_extension: str = ".txt",
        executor: LocalExecutor | None = None,
    ):
        self.cwd = cwd
        self.shell = list(shell) if shell else default_shell()
        self.output_extension = output_extension
        self.executor = executor or LocalExecutor()
        self._schema = load_summary_schema()

    def _output_path(self, out_dir: Path, name: str) -> Path:
        return out_dir / f"{safe_name(name)}{self.output_extension}"

    def _run_one(self, command: VerifyCommand, worktree: Path, output_path: Path) -> int:
        try:
            return self.executor.run_to_file([*self.shell, command.command], worktree, output_path)
        except SandboxError as e:
            raise VerificationLaunchError(f"{e} (command {command.name!r})") from e
        except OSError as e:
            raise EvidenceIOError(
                f"failed to create output file {output_path}: {e}", output_path
            ) from e

    def _validate(self, summary: dict) -> None:
        if self._schema is None:
            return
        try:
            jsonschema.validate(summary, self._schema)
        except jsonschema.ValidationError as e:
            raise SummarySchemaError(
                f"verification summary failed schema validation: {e.message}"
            ) from e

    def run(
        self,
        worktree_path: StrPath,
        out_dir: StrPath,
        commands: Sequence[VerifyCommand],
    ) -> VerifySummary:
        """Execute ``commands`` in ``worktree_path`` and persist evidence.

        Returns:
            VerifySummary whose wire form equals the written summary.json

        Raises:
            EvidenceIOError: Output directory or files cannot be created
            VerificationLaunchError: The shell could not be started
            SummarySchemaError: The built summary does not match its schema
        """
        worktree = to_absolute(worktree_path, self.cwd)
        evidence_dir = to_absolute(out_dir, self.cwd)
        try:
            evidence_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EvidenceIOError(
                f"failed to create verify outDir {evidence_dir}: {e}", evidence_dir
            ) from e

        results: list[VerifyResult] = []
        used: dict[Path, str] = {}

        for command in commands:
            output_path = self._output_path(evidence_dir, command.name)
            if output_path in used:
                logger.warning(
                    "Commands %r and %r share evidence file %s; the later run overwrites it",
                    used[output_path],
                    command.name,
                    output_path,
                )
            used[output_path] = command.name

            code = self._run_one(command, worktree, output_path)
            ok = code == 0
            logger.info("Verify %s: exit %d (%s)", command.name, code, "ok" if ok else "failed")
            results.append(
                VerifyResult(
                    name=command.name,
                    command=command.command,
                    ok=ok,
                    exit_code=code,
                    output_path=str(output_path),
                )
            )

        summary = VerifySummary(
            ran_at=now_rfc3339(),
            commands=results,
            ok=all(result.ok for result in results),
        )
        wire = summary.to_wire()
        self._validate(wire)
        write_summary(wire, evidence_dir)
        return summary
