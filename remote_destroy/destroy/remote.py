"""Remote destroy orchestration.

Runs `okteto destroy` inside the build cluster:

    init -> metadata fetched -> staged -> built -> done

Any step may fail, leaving the run in the failed state. Builder failures
are classified into stage-tagged user errors; every other failure is
raised unchanged.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

from remote_destroy.builder import OUTPUT_MODE_DESTROY, Builder, BuildRequest
from remote_destroy.cluster.client import ClusterClient
from remote_destroy.cluster.metadata import fetch_cluster_metadata
from remote_destroy.destroy.flags import get_destroy_flags
from remote_destroy.destroy.manifest import (
    SERVER_NAME_BUILD_ARG,
    TLS_CERT_BUILD_ARG,
    ManifestContext,
    render_manifest,
    resolve_cli_image,
)
from remote_destroy.destroy.workspace import WorkingDirectory, ephemeral_manifest
from remote_destroy.errors import ClusterMetadataError, classify_build_error
from remote_destroy.stages import StageLog
from remote_destroy.types import (
    ClusterMetadata,
    ClusterSession,
    DestroyOptions,
    DestroyState,
    Stage,
    StagedError,
)

if TYPE_CHECKING:
    from remote_destroy.config import Settings

logger = logging.getLogger(__name__)

MetadataFetcher = Callable[[ClusterSession], ClusterMetadata]


class RemoteDestroyer:
    """Packages a destroy into a single-use build and runs it."""

    def __init__(
        self,
        session: ClusterSession,
        builder: Builder,
        destroy_image: str = "",
        fetch_metadata: MetadataFetcher = fetch_cluster_metadata,
        working_directory: WorkingDirectory | None = None,
        stage_log: StageLog | None = None,
        cli_version: str = "",
        cli_image_override: str = "",
        action_name: str = "",
        git_commit: str = "",
        build_env_vars: dict[str, str] | None = None,
        tmp_root: Path | None = None,
    ) -> None:
        self.session = session
        self.builder = builder
        self.destroy_image = destroy_image
        self.fetch_metadata = fetch_metadata
        self.working_directory = working_directory or WorkingDirectory()
        self.stage_log = stage_log or StageLog()
        self.cli_version = cli_version
        self.cli_image_override = cli_image_override
        self.action_name = action_name
        self.git_commit = git_commit
        self.build_env_vars = dict(build_env_vars or {})
        self.tmp_root = tmp_root
        self.state = DestroyState.INIT
        self.failure: StagedError | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        builder: Builder,
        destroy_image: str = "",
    ) -> RemoteDestroyer:
        """Create a destroyer from application settings."""
        from remote_destroy.config import session_from_settings

        return cls(
            session=session_from_settings(settings),
            builder=builder,
            destroy_image=destroy_image,
            fetch_metadata=partial(
                fetch_cluster_metadata,
                client_factory=partial(
                    ClusterClient.from_session, timeout=settings.request_timeout
                ),
            ),
            cli_version=settings.cli_version,
            cli_image_override=settings.remote_cli_image,
            action_name=settings.action_name,
            git_commit=settings.git_commit,
            tmp_root=settings.tmp_dir,
        )

    def destroy(self, options: DestroyOptions) -> None:
        """Destroy a development environment remotely.

        Args:
            options: Destroy request options.

        Raises:
            ClusterMetadataError: If cluster metadata cannot be fetched.
            WorkspaceStagingError: If the build context cannot be staged.
            UserError: If the build fails.
        """
        try:
            self._destroy(options)
        except Exception:
            self.state = DestroyState.FAILED
            raise

    def _destroy(self, options: DestroyOptions) -> None:
        metadata = self.fetch_metadata(self.session)
        self.state = DestroyState.METADATA_FETCHED

        destroy_image = self.destroy_image or metadata.runner_image
        if not destroy_image:
            raise ClusterMetadataError(
                "no destroy image configured and the cluster has no runner image"
            )

        cwd = self.working_directory.get()
        context = self.create_manifest_context(metadata, destroy_image, options)

        manifest_text = render_manifest(context)

        with ephemeral_manifest(manifest_text, cwd, self.tmp_root) as manifest_path:
            self.state = DestroyState.STAGED

            # the build context resolves against the original working directory
            self.working_directory.change(cwd)

            encoded_certificate = base64.b64encode(metadata.certificate).decode()
            request = BuildRequest(
                manifest_path=manifest_path,
                context_path=cwd,
                output_mode=OUTPUT_MODE_DESTROY,
                build_args=[
                    f"{TLS_CERT_BUILD_ARG}={encoded_certificate}",
                    f"{SERVER_NAME_BUILD_ARG}={metadata.server_name}",
                ],
            )

            try:
                self.builder.build(request)
            except Exception as e:
                self.failure = classify_build_error(e)
                self.stage_log.set_stage(self.failure.stage)
                logger.debug("Remote destroy failed at stage %s", self.failure.stage)
                raise self.failure.error

            self.state = DestroyState.BUILT

        self.stage_log.set_stage(Stage.DONE.value)
        self.stage_log.close()
        self.state = DestroyState.DONE

    def create_manifest_context(
        self,
        metadata: ClusterMetadata,
        destroy_image: str,
        options: DestroyOptions,
    ) -> ManifestContext:
        """Assemble the render context; draws a fresh cache nonce."""
        return ManifestContext(
            cli_image=resolve_cli_image(self.cli_version, self.cli_image_override),
            installer_image=metadata.installer_image,
            destroy_image=destroy_image,
            session=self.session,
            destroy_flags=get_destroy_flags(options),
            build_env_vars=self.build_env_vars,
            action_name=self.action_name,
            git_commit=self.git_commit,
        )


__all__ = ["MetadataFetcher", "RemoteDestroyer"]
