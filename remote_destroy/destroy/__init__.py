"""Remote destroy module.

This module handles:
- Destroy flag composition
- Dockerfile synthesis
- Ephemeral build context staging
- Orchestrating the remote destroy build
"""

from remote_destroy.destroy.flags import get_destroy_flags
from remote_destroy.destroy.remote import RemoteDestroyer

__all__ = ["RemoteDestroyer", "get_destroy_flags"]
