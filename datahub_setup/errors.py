"""Error taxonomy for the DataHub setup tool.

Every failure is terminal for the run.  The CLI entry point catches
``ScaffoldError``, prints it to stderr and exits with ``exit_code``.
"""

from __future__ import annotations


class ScaffoldError(Exception):
    """Base class for all fatal scaffolding errors."""

    exit_code: int = 1


class UserAbort(ScaffoldError):
    """Raised when the user declines a confirmation or closes stdin."""


class ConfigValidationError(ScaffoldError):
    """Raised for an invalid engine choice, host, port or database name."""

    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}: {value!r} ({reason})")


class ResourceConflict(ScaffoldError):
    """Raised when a required port is held by a process that cannot be freed."""

    def __init__(self, port: int, pids: list[int], message: str) -> None:
        self.port = port
        self.pids = pids
        super().__init__(message)


class FilesystemError(ScaffoldError):
    """Raised when creating, removing or writing under the target root fails.

    The OS-provided message is kept verbatim.  No rollback is attempted, so
    the target root may be left partially populated.
    """

    def __init__(self, path: object, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(f"{reason}: {path}")
