"""Okteto remote destroy - run environment teardown inside the build cluster.

This package packages an `okteto destroy` invocation into an ephemeral,
single-use Dockerfile and runs it through an image builder, so the destroy
executes remotely instead of on the operator's machine.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
