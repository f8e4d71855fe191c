"""
HTTP client construction for the network transports.

The SSE and streamable HTTP transports never create an ``httpx.AsyncClient``
directly; they call a fetch factory. Swapping the factory is how callers
override networking, e.g. to skip certificate checks on https targets.
"""

import ssl
from typing import Any, Callable, Dict, Optional, Protocol, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field


DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=300.0)

# Long-lived event streams may stay silent indefinitely between events
STREAM_TIMEOUT = httpx.Timeout(30.0, read=None)


class HttpClientFactory(Protocol):
    """Callable that builds the HTTP client a transport talks through."""

    def __call__(
        self,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> httpx.AsyncClient:
        ...


def default_fetch(
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Build an HTTP client with default certificate verification."""
    return httpx.AsyncClient(
        headers=headers,
        timeout=timeout or DEFAULT_TIMEOUT,
        follow_redirects=True,
    )


def create_unverified_ssl_context() -> ssl.SSLContext:
    """Return an SSL context that accepts any certificate and host name."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class UnverifiedTLSFetch:
    """
    Fetch factory that disables certificate verification for https only.

    The agent is chosen per request from the target scheme: https requests
    go through a transport holding the unverified SSL context, everything
    else uses httpx's default transport.
    """

    name = "unverified-tls"

    def __init__(self, agent: Optional[ssl.SSLContext] = None) -> None:
        self.agent = agent or create_unverified_ssl_context()

    def agent_for(self, url: Union[str, httpx.URL]) -> Optional[ssl.SSLContext]:
        """
        Select the agent used for a request to ``url``.

        Returns:
            The unverified SSL context for https URLs, None otherwise
        """
        return self._agent_for_scheme(httpx.URL(str(url)).scheme)

    def _agent_for_scheme(self, scheme: str) -> Optional[ssl.SSLContext]:
        if scheme == "https":
            return self.agent
        return None

    def __call__(
        self,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> httpx.AsyncClient:
        mounts = {}
        for scheme in ("http", "https"):
            agent = self._agent_for_scheme(scheme)
            if agent is not None:
                mounts[f"{scheme}://"] = httpx.AsyncHTTPTransport(verify=agent)

        return httpx.AsyncClient(
            headers=headers,
            timeout=timeout or DEFAULT_TIMEOUT,
            follow_redirects=True,
            mounts=mounts,
        )


def fetch_name(fetch: Optional[Callable[..., Any]]) -> Optional[str]:
    """Stable, printable name of a fetch override."""
    if fetch is None:
        return None
    return getattr(fetch, "name", None) or getattr(fetch, "__name__", None) or type(fetch).__name__


class RequestInit(BaseModel):
    """Options applied to every HTTP request a transport makes."""

    headers: Optional[Dict[str, str]] = Field(None, description="Extra request headers")


class EventSourceInit(BaseModel):
    """Options for the SSE event stream connection."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    fetch: Optional[Callable[..., httpx.AsyncClient]] = Field(
        None, description="Fetch factory override for the event stream"
    )
