"""
Client transports.

This package provides the transports a client uses to reach a server:
stdio (child process pipes), SSE, and streamable HTTP, all behind the
common Transport interface.
"""

# Base transport types
from mcpconnect.transport.base import (
    Transport,
    TransportCapability,
    TransportError,
    TransportInfo,
    TransportType,
)

# Networking overrides
from mcpconnect.transport.fetch import (
    EventSourceInit,
    HttpClientFactory,
    RequestInit,
    UnverifiedTLSFetch,
    create_unverified_ssl_context,
    default_fetch,
)

# Stdio transport
from mcpconnect.transport.stdio import (
    StdioClientTransport,
    get_default_environment,
)

# SSE transport
from mcpconnect.transport.sse import (
    SSEClientTransport,
    SSEEvent,
    SSETransportOptions,
    iter_sse_events,
)

# Streamable HTTP transport
from mcpconnect.transport.streamable_http import (
    StreamableHTTPClientTransport,
    StreamableHTTPTransportOptions,
)

__all__ = [
    # Base types
    "Transport",
    "TransportCapability",
    "TransportError",
    "TransportInfo",
    "TransportType",

    # Networking overrides
    "EventSourceInit",
    "HttpClientFactory",
    "RequestInit",
    "UnverifiedTLSFetch",
    "create_unverified_ssl_context",
    "default_fetch",

    # Stdio transport
    "StdioClientTransport",
    "get_default_environment",

    # SSE transport
    "SSEClientTransport",
    "SSEEvent",
    "SSETransportOptions",
    "iter_sse_events",

    # Streamable HTTP transport
    "StreamableHTTPClientTransport",
    "StreamableHTTPTransportOptions",
]
