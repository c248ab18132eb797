"""Tests for cluster/metadata.py module."""

from unittest.mock import MagicMock

import pytest

from remote_destroy.cluster.metadata import fetch_cluster_metadata
from remote_destroy.errors import ClusterClientError, ClusterMetadataError
from remote_destroy.types import ClusterMetadata, ClusterSession

SESSION = ClusterSession(context="https://okteto.example.com", namespace="ns1", token="t")


def make_client(metadata: ClusterMetadata, certificate: bytes = b"cert") -> MagicMock:
    client = MagicMock()
    client.__enter__.return_value = client
    client.__exit__.return_value = False
    client.get_cluster_metadata.return_value = metadata
    client.get_cluster_certificate.return_value = certificate
    return client


class TestFetchClusterMetadata:
    """Tests for fetch_cluster_metadata function."""

    def test_metadata_with_certificate(self):
        """Should not fetch the certificate twice."""
        metadata = ClusterMetadata("runner", "installer", b"cert", "server")
        client = make_client(metadata)

        result = fetch_cluster_metadata(SESSION, lambda session: client)

        assert result == metadata
        client.get_cluster_metadata.assert_called_once_with("ns1")
        client.get_cluster_certificate.assert_not_called()
        client.__exit__.assert_called_once()

    def test_fetches_missing_certificate(self):
        """Should merge a separately fetched certificate."""
        client = make_client(ClusterMetadata("runner", "installer"), b"fetched")

        result = fetch_cluster_metadata(SESSION, lambda session: client)

        assert result.certificate == b"fetched"
        assert result.runner_image == "runner"
        client.get_cluster_certificate.assert_called_once_with(
            "https://okteto.example.com", "ns1"
        )

    def test_client_factory_failure(self):
        def factory(session):
            raise ClusterClientError("no active okteto context")

        with pytest.raises(ClusterMetadataError, match="failed to provide okteto client"):
            fetch_cluster_metadata(SESSION, factory)

    def test_metadata_request_failure(self):
        client = make_client(ClusterMetadata("runner", "installer"))
        client.get_cluster_metadata.side_effect = ClusterClientError("HTTP 500")

        with pytest.raises(ClusterMetadataError) as exc_info:
            fetch_cluster_metadata(SESSION, lambda session: client)
        assert isinstance(exc_info.value.__cause__, ClusterClientError)

    def test_certificate_request_failure(self):
        client = make_client(ClusterMetadata("runner", "installer"))
        client.get_cluster_certificate.side_effect = ClusterClientError("HTTP 403")

        with pytest.raises(ClusterMetadataError):
            fetch_cluster_metadata(SESSION, lambda session: client)

    def test_missing_installer_image(self):
        client = make_client(ClusterMetadata("runner", "", b"cert"))

        with pytest.raises(ClusterMetadataError, match="installer image"):
            fetch_cluster_metadata(SESSION, lambda session: client)
