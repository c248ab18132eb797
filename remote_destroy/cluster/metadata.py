"""Cluster metadata acquisition for remote execution."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from typing import Protocol

from remote_destroy.cluster.client import ClusterClient
from remote_destroy.errors import ClusterClientError, ClusterMetadataError
from remote_destroy.types import ClusterMetadata, ClusterSession

logger = logging.getLogger(__name__)


class MetadataClient(Protocol):
    """The slice of the cluster client used to fetch metadata."""

    def __enter__(self) -> MetadataClient: ...

    def __exit__(self, *exc_info: object) -> None: ...

    def get_cluster_metadata(self, namespace: str) -> ClusterMetadata: ...

    def get_cluster_certificate(self, context: str, namespace: str) -> bytes: ...


ClientFactory = Callable[[ClusterSession], MetadataClient]


def fetch_cluster_metadata(
    session: ClusterSession,
    client_factory: ClientFactory = ClusterClient.from_session,
) -> ClusterMetadata:
    """Fetch the metadata needed to run a destroy inside the cluster.

    The certificate is fetched with a second request when the metadata
    does not include one. There are no retries.

    Args:
        session: Active cluster session.
        client_factory: Builds a client bound to the session.

    Returns:
        ClusterMetadata with a certificate.

    Raises:
        ClusterMetadataError: If the client cannot be built or a request fails.
    """
    try:
        client = client_factory(session)
    except ClusterClientError as e:
        raise ClusterMetadataError(
            f"failed to provide okteto client for fetching certs: {e}"
        ) from e

    with client:
        try:
            metadata = client.get_cluster_metadata(session.namespace)
            if not metadata.certificate:
                logger.debug("Cluster metadata has no certificate, fetching it")
                certificate = client.get_cluster_certificate(
                    session.context, session.namespace
                )
                metadata = dataclasses.replace(metadata, certificate=certificate)
        except ClusterClientError as e:
            raise ClusterMetadataError(f"failed to fetch cluster metadata: {e}") from e

    if not metadata.installer_image:
        raise ClusterMetadataError("cluster metadata has no installer image")

    return metadata


__all__ = ["ClientFactory", "MetadataClient", "fetch_cluster_metadata"]
