"""HTTP client for the Okteto cluster API.

This module handles:
- GraphQL requests against <context>/graphql with bearer authentication
- Reading the cluster metadata used by remote execution
- Reading the cluster certificate for a context/namespace pair
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

import httpx

from remote_destroy.errors import ClusterClientError
from remote_destroy.types import ClusterMetadata, ClusterSession

logger = logging.getLogger(__name__)

# Timeout for API requests (seconds)
REQUEST_TIMEOUT = 30

METADATA_QUERY = """
query Metadata($namespace: String!) {
  metadata(namespace: $namespace) {
    metadata { name value }
  }
}
"""

CREDENTIALS_QUERY = """
query Credentials($space: String) {
  credentials(space: $space) { certificate }
}
"""

# Metadata entry names
RUNNER_IMAGE_KEY = "pipelineRunnerImage"
INSTALLER_IMAGE_KEY = "pipelineInstallerImage"
CERTIFICATE_KEY = "internalCertificateBase64"
SERVER_NAME_KEY = "internalIngressControllerNetworkAddress"


def decode_certificate(value: str | None) -> bytes:
    """Decode a base64 certificate, returning b"" when absent.

    Raises:
        ClusterClientError: If the value is not valid base64.
    """
    if not value:
        return b""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ClusterClientError(f"invalid certificate encoding: {e}") from e


class ClusterClient:
    """Client bound to one cluster session."""

    def __init__(
        self,
        session: ClusterSession,
        client: httpx.Client | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        if not session.context:
            raise ClusterClientError("no active okteto context")
        self.session = session
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._url = f"{session.context.rstrip('/')}/graphql"

    @classmethod
    def from_session(
        cls, session: ClusterSession, timeout: float = REQUEST_TIMEOUT
    ) -> ClusterClient:
        return cls(session, timeout=timeout)

    def __enter__(self) -> ClusterClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query and return its data payload."""
        headers = {"Authorization": f"Bearer {self.session.token}"}
        try:
            response = self._client.post(
                self._url,
                json={"query": query, "variables": variables},
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ClusterClientError(
                f"cluster API returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ClusterClientError(f"cluster API request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ClusterClientError("cluster API returned invalid JSON") from e

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(err.get("message", err)) for err in errors)
            raise ClusterClientError(f"cluster API error: {messages}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ClusterClientError("cluster API response has no data")
        return data

    def get_cluster_metadata(self, namespace: str) -> ClusterMetadata:
        """Fetch the metadata of the cluster scoped to a namespace.

        Args:
            namespace: Namespace of the active context.

        Returns:
            ClusterMetadata; certificate is b"" when the cluster did not send one.

        Raises:
            ClusterClientError: If the request fails.
        """
        data = self._query(METADATA_QUERY, {"namespace": namespace})
        entries = (data.get("metadata") or {}).get("metadata") or []
        values = {entry.get("name"): entry.get("value") or "" for entry in entries}
        logger.debug("Received %d cluster metadata entries", len(values))

        return ClusterMetadata(
            runner_image=values.get(RUNNER_IMAGE_KEY, ""),
            installer_image=values.get(INSTALLER_IMAGE_KEY, ""),
            certificate=decode_certificate(values.get(CERTIFICATE_KEY)),
            server_name=values.get(SERVER_NAME_KEY, ""),
        )

    def get_cluster_certificate(self, context: str, namespace: str) -> bytes:
        """Fetch the cluster certificate for a context and namespace.

        Raises:
            ClusterClientError: If the request fails or no certificate is returned.
        """
        logger.debug("Fetching cluster certificate for context %s", context)
        data = self._query(CREDENTIALS_QUERY, {"space": namespace})
        credentials = data.get("credentials") or {}
        certificate = decode_certificate(credentials.get("certificate"))
        if not certificate:
            raise ClusterClientError(f"no certificate returned for context {context}")
        return certificate


__all__ = [
    "CERTIFICATE_KEY",
    "INSTALLER_IMAGE_KEY",
    "REQUEST_TIMEOUT",
    "RUNNER_IMAGE_KEY",
    "SERVER_NAME_KEY",
    "ClusterClient",
    "decode_certificate",
]
