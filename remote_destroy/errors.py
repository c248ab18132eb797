"""Error definitions and build-failure classification.

Every error carries a stable code that the CLI can surface. Build failures
are classified into one of three variants before they reach the caller:

- a CommandError found in the cause chain reports its own stage label;
- a UserError found in the cause chain is passed through unchanged;
- anything else is wrapped as a generic UserError.

All three report through a StagedError.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TypeVar

from remote_destroy.types import Stage, StagedError

# Error code constants
USER_ERROR = "user_error"
COMMAND_ERROR = "command_error"
BUILD_ERROR = "build_failed"
BUILD_TIMEOUT = "build_timeout"
CLUSTER_METADATA_ERROR = "cluster_metadata_error"
CLUSTER_CLIENT_ERROR = "cluster_client_error"
WORKSPACE_ERROR = "workspace_error"
MANIFEST_VALUE_ERROR = "manifest_value_error"

E = TypeVar("E", bound=BaseException)


class UserError(Exception):
    """Error meant to be shown to the operator as-is."""

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        code: str = USER_ERROR,
    ) -> None:
        super().__init__(message)
        self.hint = hint
        self.code = code


class CommandError(Exception):
    """Failure of the command executed inside the build, tagged with its stage."""

    def __init__(
        self,
        stage: str,
        error: BaseException,
        code: str = COMMAND_ERROR,
    ) -> None:
        super().__init__(str(error))
        self.stage = stage
        self.error = error
        self.code = code


class BuildExecutionError(Exception):
    """Raised when the image build fails to run or exits with an error."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = BUILD_ERROR,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.code = code


class ClusterClientError(Exception):
    """Raised when a cluster API request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str = CLUSTER_CLIENT_ERROR,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class ClusterMetadataError(Exception):
    """Raised when cluster metadata cannot be acquired."""

    def __init__(self, message: str, code: str = CLUSTER_METADATA_ERROR) -> None:
        super().__init__(message)
        self.code = code


class WorkspaceStagingError(Exception):
    """Raised when the ephemeral build context cannot be staged."""

    def __init__(self, message: str, code: str = WORKSPACE_ERROR) -> None:
        super().__init__(message)
        self.code = code


class ManifestValueError(Exception):
    """Raised when a value cannot be embedded in a single Dockerfile line."""

    def __init__(self, message: str, code: str = MANIFEST_VALUE_ERROR) -> None:
        super().__init__(message)
        self.code = code


def iter_error_chain(error: BaseException) -> Iterator[BaseException]:
    """Yield an error and every error it was raised from.

    Follows explicit causes first, then implicit context, and stops on cycles.
    """
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def find_error(error: BaseException, error_type: type[E]) -> E | None:
    """Return the first error of error_type in the chain of error, if any."""
    for item in iter_error_chain(error):
        if isinstance(item, error_type):
            return item
    return None


def classify_build_error(error: BaseException) -> StagedError:
    """Map a builder failure to a stage-tagged user error.

    Args:
        error: Error raised by the builder.

    Returns:
        StagedError whose error is always a UserError.
    """
    command_error = find_error(error, CommandError)
    if command_error is not None:
        wrapped = UserError(
            f"error during development environment deployment: {command_error.error}"
        )
        wrapped.__cause__ = command_error.error
        return StagedError(stage=command_error.stage, error=wrapped)

    user_error = find_error(error, UserError)
    if user_error is not None:
        return StagedError(stage=Stage.REMOTE_DEPLOY.value, error=user_error)

    wrapped = UserError(f"error during destroy of the development environment: {error}")
    wrapped.__cause__ = error
    return StagedError(stage=Stage.REMOTE_DEPLOY.value, error=wrapped)


__all__ = [
    "BUILD_ERROR",
    "BUILD_TIMEOUT",
    "CLUSTER_CLIENT_ERROR",
    "CLUSTER_METADATA_ERROR",
    "COMMAND_ERROR",
    "MANIFEST_VALUE_ERROR",
    "USER_ERROR",
    "WORKSPACE_ERROR",
    "BuildExecutionError",
    "ClusterClientError",
    "ClusterMetadataError",
    "CommandError",
    "ManifestValueError",
    "UserError",
    "WorkspaceStagingError",
    "classify_build_error",
    "find_error",
    "iter_error_chain",
]
