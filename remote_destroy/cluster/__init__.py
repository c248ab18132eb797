"""Cluster API access.

This module handles:
- Talking to the Okteto cluster API
- Fetching the metadata and certificate used by remote execution
"""

from remote_destroy.cluster.client import ClusterClient
from remote_destroy.cluster.metadata import fetch_cluster_metadata

__all__ = ["ClusterClient", "fetch_cluster_metadata"]
