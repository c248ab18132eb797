"""Shared type definitions for remote_destroy.

This module contains dataclasses and enums shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    """Stage reported to the operator while destroying remotely.

    Structured command errors may report labels outside this set
    (e.g. "installer"); those are carried as plain strings.
    """

    BUILD = "build"
    REMOTE_DEPLOY = "remote deploy"
    DONE = "done"


class DestroyState(str, Enum):
    """State of a remote destroy orchestration run."""

    INIT = "init"
    METADATA_FETCHED = "metadata_fetched"
    STAGED = "staged"
    BUILT = "built"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ClusterSession:
    """Active cluster context passed explicitly to collaborators.

    Attributes:
        context: Context name (the Okteto URL).
        namespace: Namespace the destroy targets.
        token: Access token for the context.
    """

    context: str
    namespace: str
    token: str

    def __repr__(self) -> str:
        return (
            f"ClusterSession(context={self.context!r}, "
            f"namespace={self.namespace!r}, token='***')"
        )


@dataclass(frozen=True)
class ClusterMetadata:
    """Metadata needed to build the remote execution environment."""

    runner_image: str
    installer_image: str
    certificate: bytes = b""
    server_name: str = ""


@dataclass
class DestroyOptions:
    """Options of the destroy request forwarded to the remote execution."""

    name: str = ""
    namespace: str = ""
    manifest_path: str = ""
    destroy_volumes: bool = False
    force_destroy: bool = False


@dataclass(frozen=True)
class StagedError:
    """A failure tagged with the stage it happened in.

    Attributes:
        stage: Stage label reported to the operator.
        error: Error surfaced to the caller.
        user_facing: Whether the error is meant to be shown as-is.
    """

    stage: str
    error: BaseException
    user_facing: bool = True


__all__ = [
    "ClusterMetadata",
    "ClusterSession",
    "DestroyOptions",
    "DestroyState",
    "Stage",
    "StagedError",
]
