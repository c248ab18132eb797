"""Flags forwarded to the `okteto destroy` run inside the build."""

from __future__ import annotations

import re
import shlex

from remote_destroy.types import DestroyOptions

# Characters still special to the shell inside double quotes
_DOUBLE_QUOTE_SPECIALS = re.compile(r'(["\\$`])')


def double_quote(value: str) -> str:
    """Wrap a value in double quotes, escaping what the shell would expand."""
    return '"' + _DOUBLE_QUOTE_SPECIALS.sub(r"\\\1", value) + '"'


def get_destroy_flags(options: DestroyOptions) -> list[str]:
    """Compose the destroy flags from the request options.

    Flags are emitted in a fixed order (name, namespace, file, volumes,
    force-destroy) and only when their option is set, so equal options
    always produce the same manifest. Values are quoted for the shell that
    runs the destroy; plain names and paths are left as they are.

    Args:
        options: Destroy request options.

    Returns:
        List of flag tokens, e.g. ['--name "myenv"', '--volumes'].
    """
    flags: list[str] = []

    if options.name:
        flags.append(f"--name {double_quote(options.name)}")

    if options.namespace:
        flags.append(f"--namespace {shlex.quote(options.namespace)}")

    if options.manifest_path:
        flags.append(f"--file {shlex.quote(options.manifest_path)}")

    if options.destroy_volumes:
        flags.append("--volumes")

    if options.force_destroy:
        flags.append("--force-destroy")

    return flags


__all__ = ["double_quote", "get_destroy_flags"]
