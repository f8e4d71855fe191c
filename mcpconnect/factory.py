"""
Transport construction from a declarative configuration.

``create_transport`` turns a TransportOptions value into a stdio, SSE or
streamable HTTP transport that is ready to be started. Nothing is opened
here; every failure surfaces as a single TransportCreationError.
"""

import enum
import os
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcpconnect.resolve import find_actual_executable
from mcpconnect.transport.base import Transport, TransportType
from mcpconnect.transport.fetch import (
    EventSourceInit,
    RequestInit,
    UnverifiedTLSFetch,
)
from mcpconnect.transport.sse import SSEClientTransport, SSETransportOptions
from mcpconnect.transport.stdio import StdioClientTransport, get_default_environment
from mcpconnect.transport.streamable_http import (
    StreamableHTTPClientTransport,
    StreamableHTTPTransportOptions,
)


class TransportOptions(BaseModel):
    """Which transport to build and its mechanism-specific parameters."""

    model_config = ConfigDict(populate_by_name=True)

    transport_type: str = Field(
        ..., alias="transportType", description="Transport type (stdio, sse, http)"
    )

    # stdio
    command: Optional[str] = Field(None, description="Command to launch")
    args: Optional[List[str]] = Field(None, description="Arguments for the command")
    env: Optional[Dict[str, str]] = Field(None, description="Extra environment for the command")
    cwd: Optional[str] = Field(None, description="Working directory for the command")

    # sse / http
    url: Optional[str] = Field(None, description="Server URL")
    headers: Optional[Dict[str, str]] = Field(None, description="Headers sent with every request")
    disable_ssl_verification: bool = Field(
        False,
        alias="disableSSLVerification",
        description="Accept unverified certificates on https URLs",
    )


class CreationFailure(str, enum.Enum):
    """Kind of failure behind a TransportCreationError."""

    CONFIGURATION = "configuration"
    URL_PARSE = "url_parse"
    CONSTRUCTION = "construction"


class TransportConfigurationError(ValueError):
    """The options do not describe a transport that can be built."""


class URLParseError(ValueError):
    """The configured URL is malformed."""


class TransportCreationError(Exception):
    """Exception raised when a transport cannot be created."""

    PREFIX = "Failed to create transport: "

    def __init__(self, message: str, reason: CreationFailure = CreationFailure.CONSTRUCTION) -> None:
        """
        Initialize a transport creation error.

        Args:
            message: Message of the underlying failure
            reason: Which stage failed
        """
        self.message = f"{self.PREFIX}{message}"
        self.reason = reason
        super().__init__(self.message)


def parse_url(value: str) -> httpx.URL:
    """
    Parse an absolute http(s) URL.

    Raises:
        URLParseError: If the URL is malformed, relative, or not http(s)
    """
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError) as e:
        raise URLParseError(f"Invalid URL: {value} ({str(e)})")

    if url.scheme and url.scheme not in ("http", "https"):
        raise URLParseError(f"Unsupported URL scheme: {value}")
    if not url.scheme or not url.host:
        raise URLParseError(f"Invalid URL: {value}")
    return url


def merge_environment(
    environ: Optional[Mapping[str, Optional[str]]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Build the environment for a launched server.

    The platform default environment is overlaid with every defined entry
    of ``environ`` (None values are skipped, never treated as deletions),
    then with ``overrides``.

    Args:
        environ: Environment snapshot (defaults to os.environ)
        overrides: Explicit per-server variables

    Returns:
        Merged environment
    """
    source = os.environ if environ is None else environ
    inherited = {key: value for key, value in source.items() if value is not None}

    env = get_default_environment(inherited)
    env.update(inherited)
    if overrides:
        env.update(overrides)
    return env


def _create_stdio_transport(
    options: TransportOptions,
    environ: Optional[Mapping[str, Optional[str]]],
) -> StdioClientTransport:
    args = list(options.args) if options.args is not None else []
    env = merge_environment(environ, options.env)
    resolved = find_actual_executable(options.command or "", args, environ=env)

    return StdioClientTransport(
        command=resolved.command,
        args=resolved.args,
        env=env,
        stderr="pipe",
        cwd=options.cwd,
    )


def _create_network_transport(options: TransportOptions) -> Transport:
    if not options.url:
        raise TransportConfigurationError("URL must be provided for SSE or HTTP transport types.")
    url = parse_url(options.url)

    fetch = UnverifiedTLSFetch() if options.disable_ssl_verification else None
    request_init = RequestInit(headers=dict(options.headers)) if options.headers is not None else None

    if options.transport_type == TransportType.SSE.value:
        event_source_init = EventSourceInit(fetch=fetch) if fetch is not None else None
        sse_options = SSETransportOptions(
            request_init=request_init, event_source_init=event_source_init
        )
        return SSEClientTransport(url, sse_options)

    http_options = StreamableHTTPTransportOptions(request_init=request_init, fetch=fetch)
    return StreamableHTTPClientTransport(url, http_options)


def _failure_reason(error: Exception) -> CreationFailure:
    if isinstance(error, (TransportConfigurationError, ValidationError)):
        return CreationFailure.CONFIGURATION
    if isinstance(error, URLParseError):
        return CreationFailure.URL_PARSE
    return CreationFailure.CONSTRUCTION


def _failure_message(error: Exception) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)


def create_transport(
    options: Union[TransportOptions, Mapping[str, Any]],
    environ: Optional[Mapping[str, Optional[str]]] = None,
) -> Transport:
    """
    Create a transport from its configuration.

    Args:
        options: TransportOptions, or a mapping using its field names or aliases
        environ: Environment snapshot for stdio servers (defaults to os.environ)

    Returns:
        A constructed transport that has not been started

    Raises:
        TransportCreationError: For any failure; the message embeds the cause
    """
    try:
        if not isinstance(options, TransportOptions):
            options = TransportOptions.model_validate(options)

        transport_type = options.transport_type
        if transport_type == TransportType.STDIO.value:
            return _create_stdio_transport(options, environ)

        if transport_type in (TransportType.SSE.value, TransportType.HTTP.value):
            return _create_network_transport(options)

        raise TransportConfigurationError(f"Unsupported transport type: {transport_type}")

    except Exception as e:
        raise TransportCreationError(_failure_message(e), _failure_reason(e)) from e
