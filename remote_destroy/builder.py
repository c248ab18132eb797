"""Image builder abstraction and its docker implementation.

This module handles:
- The BuildRequest handed to any Builder
- Composing `docker build` commands from a request
- Executing builds with subprocess, capturing output to a log file
- Recovering the stage of a failed nested okteto command from its JSON logs
"""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from remote_destroy.errors import BUILD_TIMEOUT, BuildExecutionError, CommandError

logger = logging.getLogger(__name__)

OUTPUT_MODE_DESTROY = "destroy"
LOG_PREFIX = "destroy-build-"
LOG_SUFFIX = ".log"


@dataclass
class BuildRequest:
    """A single image build.

    Attributes:
        manifest_path: Path to the Dockerfile.
        context_path: Build context directory.
        output_mode: Output preset; "destroy" hides build progress noise.
        build_args: Build arguments as KEY=VALUE strings.
    """

    manifest_path: Path
    context_path: Path
    output_mode: str = OUTPUT_MODE_DESTROY
    build_args: list[str] = field(default_factory=list)


class Builder(Protocol):
    """Runs a build request, raising on failure."""

    def build(self, request: BuildRequest) -> None: ...


def compose_build_command(
    request: BuildRequest,
    docker_binary: str = "docker",
) -> list[str]:
    """Compose the `docker build` command for a request.

    Args:
        request: Build request.
        docker_binary: docker executable.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [docker_binary, "build", "-f", str(request.manifest_path)]

    # plain progress keeps the nested okteto JSON records on their own lines
    if request.output_mode == OUTPUT_MODE_DESTROY:
        cmd.append("--progress=plain")

    for build_arg in request.build_args:
        cmd.extend(["--build-arg", build_arg])

    cmd.append(str(request.context_path))
    return cmd


def redact_command(cmd: list[str]) -> str:
    """Render a command for logging with build argument values hidden."""
    redacted: list[str] = []
    hide_next = False
    for part in cmd:
        if hide_next:
            key = part.split("=", 1)[0]
            redacted.append(f"{key}=***")
            hide_next = False
            continue
        redacted.append(part)
        hide_next = part == "--build-arg"
    return shlex.join(redacted)


def parse_json_log_line(line: str) -> dict[str, Any] | None:
    """Parse a JSON log record from a build output line.

    Build output prefixes each line with step markers, so parsing starts
    at the first "{".
    """
    start = line.find("{")
    if start < 0:
        return None
    try:
        record = json.loads(line[start:])
    except ValueError:
        return None
    return record if isinstance(record, dict) else None


def find_failed_stage(log_text: str) -> tuple[str, str] | None:
    """Return (stage, message) of the last error record with a stage."""
    failed: tuple[str, str] | None = None
    for line in log_text.splitlines():
        record = parse_json_log_line(line)
        if record is None or record.get("level") != "error":
            continue
        stage = record.get("stage")
        if stage:
            failed = (str(stage), str(record.get("message", "")))
    return failed


class DockerBuilder:
    """Builder that runs `docker build` locally against the remote context."""

    def __init__(
        self,
        log_dir: Path | None = None,
        timeout: int | None = None,
        docker_binary: str = "docker",
    ) -> None:
        self.log_dir = log_dir or Path(tempfile.gettempdir()) / "okteto-remote-destroy"
        self.timeout = timeout
        self.docker_binary = docker_binary

    def new_log_path(self) -> Path:
        """Create a log file owned by a single build."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix=LOG_PREFIX, suffix=LOG_SUFFIX, dir=self.log_dir
        )
        os.close(fd)
        return Path(name)

    def build(self, request: BuildRequest) -> None:
        """Execute a build.

        Raises:
            CommandError: If the nested okteto command failed at a known stage.
            BuildExecutionError: If the build fails for any other reason.
        """
        log_path = self.new_log_path()

        cmd = compose_build_command(request, self.docker_binary)
        cmd_str = redact_command(cmd)
        logger.info("Executing build: %s", cmd_str)
        logger.debug("Build log: %s", log_path)

        started_at = datetime.now(timezone.utc)

        try:
            with log_path.open("w") as log_file:
                log_file.write(f"# Command: {cmd_str}\n")
                log_file.write(f"# Started: {started_at.isoformat()}\n")
                log_file.write("# " + "=" * 70 + "\n\n")
                log_file.flush()

                result = subprocess.run(
                    cmd,
                    cwd=request.context_path,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    timeout=self.timeout,
                    check=False,
                )
        except subprocess.TimeoutExpired as e:
            error_message = f"Build timed out after {self.timeout} seconds"
            logger.error("%s. See log: %s", error_message, log_path)
            raise BuildExecutionError(
                error_message,
                exit_code=-1,
                code=BUILD_TIMEOUT,
            ) from e
        except OSError as e:
            error_message = f"Failed to execute build: {e}"
            logger.error(error_message)
            raise BuildExecutionError(error_message, code="execution_error") from e

        duration = (datetime.now(timezone.utc) - started_at).total_seconds()
        logger.debug(
            "Build finished in %.1fs with exit code %d", duration, result.returncode
        )

        if result.returncode == 0:
            return

        error = BuildExecutionError(
            f"Build failed with exit code {result.returncode}",
            exit_code=result.returncode,
        )
        logger.error("%s. See log: %s", error, log_path)

        failed = find_failed_stage(log_path.read_text(errors="replace"))
        if failed is not None:
            stage, message = failed
            cause = BuildExecutionError(message or str(error))
            raise CommandError(stage, cause) from error
        raise error


__all__ = [
    "LOG_PREFIX",
    "LOG_SUFFIX",
    "OUTPUT_MODE_DESTROY",
    "BuildRequest",
    "Builder",
    "DockerBuilder",
    "compose_build_command",
    "find_failed_stage",
    "parse_json_log_line",
    "redact_command",
]
