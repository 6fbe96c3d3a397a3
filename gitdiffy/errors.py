"""Exception types raised by gitdiffy.

The CLI and the watch loop rely on these classes to tell apart failures that
abort the whole process (configuration) from failures that only abort the
current commit cycle or a single git operation.
"""

from typing import Optional, Sequence


class GitdiffyError(Exception):
    """Base class for all gitdiffy errors."""


class ConfigError(GitdiffyError):
    """Raised when required configuration is missing or invalid."""


class NoChangesError(GitdiffyError):
    """Raised when staging the working tree leaves nothing to commit."""

    def __init__(self, message: str = "No changes to commit.") -> None:
        super().__init__(message)


class TransportError(GitdiffyError):
    """Raised when the message generation service cannot be reached."""


class GenerationError(GitdiffyError):
    """Raised when the message generation service reports an error."""


class VcsOperationError(GitdiffyError):
    """Raised when a single git operation fails.

    Attributes:
        command: The git command that failed, if known.
        stderr: Whatever the command wrote to stderr.
    """

    def __init__(self, message: str, command: Optional[Sequence[str]] = None,
                 stderr: str = "") -> None:
        super().__init__(message)
        self.command = list(command) if command else []
        self.stderr = stderr.strip()

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}: {self.stderr}"
        return base
