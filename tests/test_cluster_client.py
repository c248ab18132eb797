"""Tests for the cluster API client.

These tests use mocked HTTP responses via respx.
"""

import base64
import json

import httpx
import pytest
import respx

from remote_destroy.cluster.client import (
    REQUEST_TIMEOUT,
    ClusterClient,
    decode_certificate,
)
from remote_destroy.errors import ClusterClientError
from remote_destroy.types import ClusterMetadata, ClusterSession

CONTEXT = "https://okteto.example.com"
GRAPHQL_URL = f"{CONTEXT}/graphql"
CERT = b"-----BEGIN CERTIFICATE-----\nabc\n-----END CERTIFICATE-----\n"


@pytest.fixture
def session() -> ClusterSession:
    return ClusterSession(context=CONTEXT, namespace="ns1", token="secret-token")


def metadata_payload(**values: str) -> dict:
    return {
        "data": {
            "metadata": {
                "metadata": [{"name": k, "value": v} for k, v in values.items()]
            }
        }
    }


class TestDecodeCertificate:
    """Tests for decode_certificate function."""

    def test_empty(self):
        assert decode_certificate(None) == b""
        assert decode_certificate("") == b""

    def test_valid(self):
        assert decode_certificate(base64.b64encode(CERT).decode()) == CERT

    def test_invalid(self):
        with pytest.raises(ClusterClientError):
            decode_certificate("not base64!!")


class TestClusterClient:
    """Tests for ClusterClient."""

    def test_requires_context(self):
        with pytest.raises(ClusterClientError):
            ClusterClient(ClusterSession(context="", namespace="ns", token="t"))

    def test_from_session_timeout(self, session):
        """The configured timeout should reach the HTTP client."""
        with ClusterClient.from_session(session, timeout=7) as client:
            assert client._client.timeout == httpx.Timeout(7)

    def test_from_session_default_timeout(self, session):
        with ClusterClient.from_session(session) as client:
            assert client._client.timeout == httpx.Timeout(REQUEST_TIMEOUT)

    @respx.mock
    def test_get_cluster_metadata(self, session):
        """Should map metadata entries and send the bearer token."""
        route = respx.post(GRAPHQL_URL).mock(
            return_value=httpx.Response(
                200,
                json=metadata_payload(
                    pipelineRunnerImage="okteto/pipeline-runner:1.0",
                    pipelineInstallerImage="okteto/installer:1.0",
                    internalCertificateBase64=base64.b64encode(CERT).decode(),
                    internalIngressControllerNetworkAddress="ingress.internal",
                ),
            )
        )

        with ClusterClient(session) as client:
            metadata = client.get_cluster_metadata("ns1")

        assert metadata == ClusterMetadata(
            runner_image="okteto/pipeline-runner:1.0",
            installer_image="okteto/installer:1.0",
            certificate=CERT,
            server_name="ingress.internal",
        )
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert json.loads(request.content)["variables"] == {"namespace": "ns1"}

    @respx.mock
    def test_metadata_without_certificate(self, session):
        respx.post(GRAPHQL_URL).mock(
            return_value=httpx.Response(
                200, json=metadata_payload(pipelineInstallerImage="okteto/installer:1.0")
            )
        )

        with ClusterClient(session) as client:
            metadata = client.get_cluster_metadata("ns1")

        assert metadata.certificate == b""
        assert metadata.runner_image == ""

    @respx.mock
    def test_get_cluster_certificate(self, session):
        respx.post(GRAPHQL_URL).mock(
            return_value=httpx.Response(
                200,
                json={"data": {"credentials": {"certificate": base64.b64encode(CERT).decode()}}},
            )
        )

        with ClusterClient(session) as client:
            assert client.get_cluster_certificate(CONTEXT, "ns1") == CERT

    @respx.mock
    def test_missing_certificate(self, session):
        respx.post(GRAPHQL_URL).mock(
            return_value=httpx.Response(200, json={"data": {"credentials": {}}})
        )

        with ClusterClient(session) as client, pytest.raises(ClusterClientError):
            client.get_cluster_certificate(CONTEXT, "ns1")

    @respx.mock
    def test_http_error(self, session):
        respx.post(GRAPHQL_URL).mock(return_value=httpx.Response(401))

        with ClusterClient(session) as client:
            with pytest.raises(ClusterClientError) as exc_info:
                client.get_cluster_metadata("ns1")
        assert exc_info.value.status_code == 401

    @respx.mock
    def test_connection_error(self, session):
        respx.post(GRAPHQL_URL).mock(side_effect=httpx.ConnectError("refused"))

        with ClusterClient(session) as client, pytest.raises(ClusterClientError):
            client.get_cluster_metadata("ns1")

    @respx.mock
    def test_graphql_errors(self, session):
        respx.post(GRAPHQL_URL).mock(
            return_value=httpx.Response(
                200, json={"errors": [{"message": "namespace not found"}]}
            )
        )

        with ClusterClient(session) as client:
            with pytest.raises(ClusterClientError, match="namespace not found"):
                client.get_cluster_metadata("ns1")

    def test_external_client_not_closed(self, session):
        """A client passed in should be left open."""
        http_client = httpx.Client()
        with ClusterClient(session, client=http_client):
            pass
        assert not http_client.is_closed
        http_client.close()
