"""Ephemeral build context staging for the remote destroy.

This module handles:
- Creating a fresh temporary directory per destroy run
- Writing the rendered Dockerfile into it
- Propagating .oktetodeployignore as the build's .dockerignore
- Removing the staged Dockerfile when the run ends

The staged directory is owned by one run and never shared.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from remote_destroy.errors import WorkspaceStagingError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "deploy"
SOURCE_IGNORE_FILENAME = ".oktetodeployignore"
IGNORE_FILENAME = ".dockerignore"
WORKSPACE_PREFIX = "okteto-destroy-"

# The manifest holds the access token
MANIFEST_FILE_MODE = 0o600


class WorkingDirectory:
    """Reads and changes the process working directory."""

    def get(self) -> Path:
        try:
            return Path.cwd()
        except OSError as e:
            raise WorkspaceStagingError(
                f"Failed to read working directory: {e}",
                code="cwd_error",
            ) from e

    def change(self, path: Path) -> None:
        try:
            os.chdir(path)
        except OSError as e:
            raise WorkspaceStagingError(
                f"Failed to change working directory to {path}: {e}",
                code="cwd_error",
            ) from e


def create_workspace(tmp_root: Path | None = None) -> Path:
    """Create a fresh ephemeral directory.

    Args:
        tmp_root: Parent directory (uses system default if None).

    Returns:
        Path to the new directory.

    Raises:
        WorkspaceStagingError: If the directory cannot be created.
    """
    try:
        if tmp_root is not None:
            tmp_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=tmp_root))
    except OSError as e:
        raise WorkspaceStagingError(
            f"Failed to create ephemeral directory: {e}",
            code="workspace_create_error",
        ) from e


def write_manifest(workspace: Path, manifest_text: str) -> Path:
    """Write the Dockerfile into the workspace.

    Raises:
        WorkspaceStagingError: If writing fails.
    """
    manifest_path = workspace / MANIFEST_FILENAME
    try:
        manifest_path.write_text(manifest_text, encoding="utf-8")
        manifest_path.chmod(MANIFEST_FILE_MODE)
    except OSError as e:
        raise WorkspaceStagingError(
            f"Failed to write Dockerfile {manifest_path}: {e}",
            code="manifest_write_error",
        ) from e
    return manifest_path


def copy_ignore_file(working_dir: Path, workspace: Path) -> Path | None:
    """Copy .oktetodeployignore into the workspace as .dockerignore.

    A missing source file is not an error.

    Args:
        working_dir: Directory the destroy was invoked from.
        workspace: Ephemeral build context.

    Returns:
        Path to the copied file, or None if there was nothing to copy.

    Raises:
        WorkspaceStagingError: If the source cannot be read or the copy written.
    """
    source = working_dir / SOURCE_IGNORE_FILENAME
    dest = workspace / IGNORE_FILENAME

    try:
        content = source.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise WorkspaceStagingError(
            f"Failed to read {source}: {e}",
            code="ignore_read_error",
        ) from e

    try:
        dest.write_bytes(content)
        dest.chmod(0o600)
    except OSError as e:
        raise WorkspaceStagingError(
            f"Failed to write {dest}: {e}",
            code="ignore_write_error",
        ) from e

    logger.debug("Copied %s to %s", source, dest)
    return dest


def stage_workspace(
    manifest_text: str,
    working_dir: Path,
    tmp_root: Path | None = None,
) -> Path:
    """Stage the Dockerfile and ignore file into a fresh ephemeral directory.

    Args:
        manifest_text: Rendered Dockerfile.
        working_dir: Directory the destroy was invoked from.
        tmp_root: Parent for the ephemeral directory.

    Returns:
        Path to the staged Dockerfile.

    Raises:
        WorkspaceStagingError: If staging fails.
    """
    workspace = create_workspace(tmp_root)
    try:
        manifest_path = write_manifest(workspace, manifest_text)
        copy_ignore_file(working_dir, workspace)
    except WorkspaceStagingError:
        shutil.rmtree(workspace, ignore_errors=True)
        raise
    return manifest_path


def remove_manifest(manifest_path: Path) -> None:
    """Remove a staged Dockerfile and its directory, logging failures."""
    try:
        manifest_path.unlink()
    except OSError as e:
        logger.info("error removing dockerfile: %s", e)
        return

    workspace = manifest_path.parent
    try:
        shutil.rmtree(workspace)
    except OSError as e:
        logger.debug("Could not remove ephemeral directory %s: %s", workspace, e)


@contextmanager
def ephemeral_manifest(
    manifest_text: str,
    working_dir: Path,
    tmp_root: Path | None = None,
) -> Iterator[Path]:
    """Stage the Dockerfile and remove it on every exit path.

    Yields:
        Path to the staged Dockerfile.
    """
    manifest_path = stage_workspace(manifest_text, working_dir, tmp_root)
    try:
        yield manifest_path
    finally:
        remove_manifest(manifest_path)


__all__ = [
    "IGNORE_FILENAME",
    "MANIFEST_FILENAME",
    "SOURCE_IGNORE_FILENAME",
    "WorkingDirectory",
    "copy_ignore_file",
    "create_workspace",
    "ephemeral_manifest",
    "remove_manifest",
    "stage_workspace",
    "write_manifest",
]
