"""Error taxonomy shared by the branch cleanup passes."""

from __future__ import annotations

from typing import Sequence


class BranchCleanupError(RuntimeError):
    """Raised when a cleanup pass cannot proceed at all."""


class NotARepositoryError(BranchCleanupError):
    pass


class MissingInputError(BranchCleanupError):
    pass


class MissingColumnError(BranchCleanupError):
    pass


class ConfigError(BranchCleanupError):
    pass


class GitCommandError(BranchCleanupError):
    """A git invocation returned a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`git {' '.join(self.argv)}` exited with {returncode}{detail}")
