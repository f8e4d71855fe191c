"""
mcpconnect - transports for reaching MCP servers

Builds a ready-to-start transport to a server over local subprocess pipes,
Server-Sent Events, or streamable HTTP from a single declarative
configuration.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from typing import List


def get_version() -> str:
    """Return the current version of the package."""
    return __version__


from mcpconnect.factory import (  # noqa: E402
    CreationFailure,
    TransportCreationError,
    TransportOptions,
    create_transport,
)
from mcpconnect.client import Client, ClientError  # noqa: E402

__all__: List[str] = [
    "get_version",
    "Client",
    "ClientError",
    "CreationFailure",
    "TransportCreationError",
    "TransportOptions",
    "create_transport",
]
