"""Dockerfile synthesis for the remote destroy build.

This module handles:
- Resolving the okteto CLI image matching this build of the tool
- Assembling the destroy Dockerfile from typed stage/instruction records
- Drawing the cache-invalidation nonce

The last stage runs `okteto destroy`, so the nonce must change on every
render: a cached layer would skip the destroy entirely.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass, field

from remote_destroy.errors import ManifestValueError
from remote_destroy.types import ClusterSession

OKTETO_CLI_IMAGE_TEMPLATE = "okteto/okteto:{version}"
CERTS_IMAGE = "alpine"

# Environment variables injected into the destroy image
CONTEXT_ENV_VAR = "OKTETO_CONTEXT"
NAMESPACE_ENV_VAR = "OKTETO_NAMESPACE"
TOKEN_ENV_VAR = "OKTETO_TOKEN"
ACTION_NAME_ENV_VAR = "OKTETO_ACTION_NAME"
GIT_COMMIT_ENV_VAR = "OKTETO_GIT_COMMIT"
DEPLOY_REMOTE_ENV_VAR = "OKTETO_DEPLOY_REMOTE"
INVALIDATE_CACHE_ENV_VAR = "OKTETO_INVALIDATE_CACHE"

# Build arguments, never persisted as ENV
TLS_CERT_BUILD_ARG = "OKTETO_TLS_CERT_BASE64"
SERVER_NAME_BUILD_ARG = "INTERNAL_SERVER_NAME"

BIN_DIR = "/okteto/bin"
SRC_DIR = "/okteto/src"
CERT_PATH = "/etc/ssl/certs/okteto.crt"

CACHE_NONCE_RANGE = 1000

_VERSION_PATTERN = re.compile(r"\d+\.\d+\.\d+")


def resolve_cli_image(version: str, override: str | None = None) -> str:
    """Resolve the okteto CLI image for a version string.

    Released versions pin the matching image. Development builds use the
    override when set, else the "latest" tag.

    Args:
        version: Version string of the running tool.
        override: Image to use for non-released versions.

    Returns:
        Image reference.
    """
    if _VERSION_PATTERN.search(version):
        return OKTETO_CLI_IMAGE_TEMPLATE.format(version=version)
    if override:
        return override
    return OKTETO_CLI_IMAGE_TEMPLATE.format(version="latest")


def new_cache_nonce() -> int:
    """Draw a cache-invalidation nonce in [0, 1000)."""
    return secrets.randbelow(CACHE_NONCE_RANGE)


def require_single_line(value: str, what: str) -> str:
    """Return value if it fits on one Dockerfile line.

    Raises:
        ManifestValueError: If value contains a line break.
    """
    if "\n" in value or "\r" in value:
        raise ManifestValueError(f"{what} must not contain line breaks")
    return value


@dataclass(frozen=True)
class Instruction:
    """A single Dockerfile instruction."""

    keyword: str
    arguments: str

    def render(self) -> str:
        return f"{self.keyword} {self.arguments}"


@dataclass
class BuildStage:
    """A FROM stage and the instructions that follow it."""

    base_image: str
    alias: str
    instructions: list[Instruction] = field(default_factory=list)

    def add(self, keyword: str, arguments: str) -> BuildStage:
        require_single_line(arguments, f"{keyword} instruction")
        self.instructions.append(Instruction(keyword, arguments))
        return self

    def env(self, key: str, value: str) -> BuildStage:
        # a trailing backslash would continue into the next instruction
        if value.endswith("\\"):
            raise ManifestValueError(f"value of {key} must not end with a backslash")
        require_single_line(value, f"value of {key}")
        return self.add("ENV", f"{key} {value}")

    def render(self) -> list[str]:
        lines = [f"FROM {self.base_image} as {self.alias}"]
        lines.extend(instruction.render() for instruction in self.instructions)
        return lines


@dataclass
class DockerfileManifest:
    """An ordered list of build stages."""

    stages: list[BuildStage] = field(default_factory=list)

    def stage(self, base_image: str, alias: str) -> BuildStage:
        require_single_line(base_image, f"base image of stage {alias}")
        new_stage = BuildStage(base_image, alias)
        self.stages.append(new_stage)
        return new_stage

    def render(self) -> str:
        blocks = ["\n".join(stage.render()) for stage in self.stages]
        return "\n\n".join(blocks) + "\n"


@dataclass
class ManifestContext:
    """Everything the destroy Dockerfile is rendered from.

    Attributes:
        cli_image: okteto CLI image to copy the binary from.
        installer_image: Installer image to copy binaries from.
        destroy_image: Base image of the stage running the destroy.
        session: Cluster session injected as environment.
        destroy_flags: Flags appended to `okteto destroy`.
        build_env_vars: Extra environment variables for the destroy stage.
        action_name: Pipeline action name, omitted when empty.
        git_commit: Git commit, omitted when empty.
        cache_nonce: Cache-invalidation nonce.
    """

    cli_image: str
    installer_image: str
    destroy_image: str
    session: ClusterSession
    destroy_flags: list[str] = field(default_factory=list)
    build_env_vars: dict[str, str] = field(default_factory=dict)
    action_name: str = ""
    git_commit: str = ""
    cache_nonce: int = field(default_factory=new_cache_nonce)


def _env_bindings(context: ManifestContext) -> list[tuple[str, str]]:
    """Return the ENV bindings of the destroy stage, empty values dropped."""
    bindings = sorted(context.build_env_vars.items())
    bindings.extend(
        [
            (NAMESPACE_ENV_VAR, context.session.namespace),
            (CONTEXT_ENV_VAR, context.session.context),
            (TOKEN_ENV_VAR, context.session.token),
            (DEPLOY_REMOTE_ENV_VAR, "true"),
            (ACTION_NAME_ENV_VAR, context.action_name),
            (GIT_COMMIT_ENV_VAR, context.git_commit),
        ]
    )
    return [(key, value) for key, value in bindings if value != ""]


def build_destroy_manifest(context: ManifestContext) -> DockerfileManifest:
    """Assemble the destroy Dockerfile as stage records.

    Args:
        context: Render context.

    Returns:
        DockerfileManifest ready to render.
    """
    manifest = DockerfileManifest()
    manifest.stage(context.cli_image, "okteto-cli")
    manifest.stage(context.installer_image, "installer")
    manifest.stage(CERTS_IMAGE, "certs").add(
        "RUN", "apk update && apk add ca-certificates"
    )

    deploy = manifest.stage(context.destroy_image, "deploy")
    deploy.add("ENV", f'PATH="${{PATH}}:{BIN_DIR}"')
    deploy.add("COPY", "--from=certs /etc/ssl/certs /etc/ssl/certs")
    deploy.add("COPY", f"--from=installer /app/bin/* {BIN_DIR}/")
    deploy.add("COPY", f"--from=okteto-cli /usr/local/bin/* {BIN_DIR}/")

    for key, value in _env_bindings(context):
        deploy.env(key, value)

    deploy.add("COPY", f". {SRC_DIR}")
    deploy.add("WORKDIR", SRC_DIR)
    deploy.env(INVALIDATE_CACHE_ENV_VAR, str(context.cache_nonce))
    deploy.add("ARG", TLS_CERT_BUILD_ARG)
    deploy.add("ARG", f'{SERVER_NAME_BUILD_ARG}=""')
    deploy.add("RUN", f'echo "${TLS_CERT_BUILD_ARG}" | base64 -d > {CERT_PATH}')

    command = [
        "okteto destroy",
        "--log-output=json",
        f'--server-name="${SERVER_NAME_BUILD_ARG}"',
        *context.destroy_flags,
    ]
    deploy.add("RUN", " ".join(command))
    return manifest


def render_manifest(context: ManifestContext) -> str:
    """Render the destroy Dockerfile text."""
    return build_destroy_manifest(context).render()


__all__ = [
    "ACTION_NAME_ENV_VAR",
    "CACHE_NONCE_RANGE",
    "CONTEXT_ENV_VAR",
    "DEPLOY_REMOTE_ENV_VAR",
    "GIT_COMMIT_ENV_VAR",
    "INVALIDATE_CACHE_ENV_VAR",
    "NAMESPACE_ENV_VAR",
    "OKTETO_CLI_IMAGE_TEMPLATE",
    "SERVER_NAME_BUILD_ARG",
    "TLS_CERT_BUILD_ARG",
    "TOKEN_ENV_VAR",
    "BuildStage",
    "DockerfileManifest",
    "Instruction",
    "ManifestContext",
    "build_destroy_manifest",
    "new_cache_nonce",
    "render_manifest",
    "require_single_line",
    "resolve_cli_image",
]
