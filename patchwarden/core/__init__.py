"""Core modules for patchwarden."""

from patchwarden.core.diff import DiffPathExtractor, TouchedFile, extract_touched_files
from patchwarden.core.errors import (
    ContainmentError,
    DiffFormatError,
    EvidenceIOError,
    GitCommandError,
    InputError,
    OwnershipConfigError,
    OwnershipViolationError,
    PatchWardenError,
    PolicyViolationError,
)
from patchwarden.core.ownership import OwnershipEnforcer
from patchwarden.core.paths import is_contained, normalize_lexical, to_absolute

__all__ = [
    "ContainmentError",
    "DiffFormatError",
    "DiffPathExtractor",
    "EvidenceIOError",
    "GitCommandError",
    "InputError",
    "OwnershipConfigError",
    "OwnershipEnforcer",
    "OwnershipViolationError",
    "PatchWardenError",
    "PolicyViolationError",
    "TouchedFile",
    "extract_touched_files",
    "is_contained",
    "normalize_lexical",
    "to_absolute",
]
