"""patchwarden - guarded worktree, patch and verification primitives.

Lets an orchestrator mutate an isolated checkout safely: patches are
applied only when every touched file sits under an allowed prefix, and
worktrees are never nested inside their source repository.
"""

__version__ = "0.1.0"
