"""
Server-Sent Events client transport.

The server streams messages over a long-lived GET request. Its first
event, ``endpoint``, names the URL that client messages are POSTed to.
"""

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Set, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from mcpconnect.protocol import (
    BatchMessage,
    Message,
    MessageValidationError,
    parse_message,
    serialize_message,
)
from mcpconnect.transport.base import (
    Transport,
    TransportCapability,
    TransportError,
    TransportInfo,
    TransportType,
)
from mcpconnect.transport.fetch import (
    EventSourceInit,
    HttpClientFactory,
    RequestInit,
    STREAM_TIMEOUT,
    default_fetch,
    fetch_name,
)


class SSEEvent(BaseModel):
    """A single dispatched Server-Sent Event."""

    event: str = Field("message", description="Event type")
    data: str = Field("", description="Event payload")
    id: Optional[str] = Field(None, description="Last event ID")


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[SSEEvent]:
    """
    Parse an event stream, one line at a time, into events.

    Args:
        lines: Lines of the stream without their terminators

    Yields:
        Each complete event; an unterminated trailing event is dropped
    """
    event_type: Optional[str] = None
    data: List[str] = []
    last_id: Optional[str] = None

    async for line in lines:
        if not line:
            if data:
                yield SSEEvent(event=event_type or "message", data="\n".join(data), id=last_id)
            event_type = None
            data = []
            continue

        if line.startswith(":"):
            # Comment / keep-alive
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            event_type = value
        elif field == "data":
            data.append(value)
        elif field == "id":
            last_id = value


class SSETransportOptions(BaseModel):
    """Construction options for SSEClientTransport."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    request_init: Optional[RequestInit] = Field(None, description="Options for every request")
    event_source_init: Optional[EventSourceInit] = Field(None, description="Event stream options")


class SSEClientTransport(Transport):
    """
    Client transport over HTTP with Server-Sent Events.

    Constructing the transport performs no I/O; ``start()`` opens the event
    stream and returns once the server has announced its message endpoint.
    """

    def __init__(
        self,
        url: Union[str, httpx.URL],
        options: Optional[SSETransportOptions] = None,
        endpoint_timeout: float = 30.0,
    ) -> None:
        """
        Initialize the SSE transport.

        Args:
            url: URL of the server's event stream
            options: Request and event stream options
            endpoint_timeout: Seconds to wait for the endpoint event
        """
        super().__init__()
        self.url = httpx.URL(str(url))
        self.options = options or SSETransportOptions()
        self.endpoint_timeout = endpoint_timeout
        self.client: Optional[httpx.AsyncClient] = None
        self._endpoint: Optional[httpx.URL] = None
        self._endpoint_future: Optional[asyncio.Future] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._logger = logging.getLogger("mcpconnect.transport.sse")

    @property
    def info(self) -> TransportInfo:
        """Get information about the transport."""
        capabilities: Set[TransportCapability] = {
            TransportCapability.STREAMING,
            TransportCapability.BIDIRECTIONAL,
            TransportCapability.SESSIONS,
        }
        return TransportInfo(type=TransportType.SSE, capabilities=capabilities)

    @property
    def endpoint(self) -> Optional[httpx.URL]:
        """URL that messages are POSTed to, once announced."""
        return self._endpoint

    @property
    def session_id(self) -> Optional[str]:
        if self._endpoint is None:
            return None
        return self._endpoint.params.get("sessionId") or self._endpoint.params.get("session_id")

    @property
    def fetch(self) -> HttpClientFactory:
        event_source_init = self.options.event_source_init
        if event_source_init is not None and event_source_init.fetch is not None:
            return event_source_init.fetch
        return default_fetch

    def describe(self) -> Dict[str, Any]:
        request_init = self.options.request_init
        event_source_init = self.options.event_source_init
        return {
            "type": TransportType.SSE.value,
            "url": str(self.url),
            "headers": dict(request_init.headers) if request_init and request_init.headers is not None else None,
            "fetch": fetch_name(event_source_init.fetch) if event_source_init else None,
        }

    async def start(self) -> None:
        """
        Open the event stream and wait for the endpoint event.

        Raises:
            TransportError: If already started, the stream fails, or no endpoint arrives in time
        """
        if self.client is not None:
            raise TransportError("SSE transport is already started")

        request_init = self.options.request_init
        headers = dict(request_init.headers) if request_init and request_init.headers else None
        self.client = self.fetch(headers=headers)
        self._close_notified = False
        self._endpoint_future = asyncio.get_running_loop().create_future()
        self._reader_task = asyncio.create_task(self._read_loop(self._endpoint_future))

        try:
            self._endpoint = await asyncio.wait_for(
                asyncio.shield(self._endpoint_future), timeout=self.endpoint_timeout
            )
        except asyncio.TimeoutError:
            await self.close()
            raise TransportError("Timed out waiting for the endpoint event")
        except TransportError:
            await self.close()
            raise

        self._logger.debug("SSE endpoint is %s", self._endpoint)

    async def send(self, message: Union[Message, BatchMessage]) -> None:
        """
        POST a message to the announced endpoint.

        Raises:
            TransportError: If not connected or the server rejects the message
        """
        if self.client is None or self._endpoint is None:
            raise TransportError("Not connected")

        try:
            response = await self.client.post(
                self._endpoint,
                content=serialize_message(message),
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as e:
            raise TransportError(f"HTTP request failed: {str(e)}")

        if response.is_error:
            raise TransportError(
                f"Error POSTing to endpoint (HTTP {response.status_code}): {response.text}"
            )

    async def close(self) -> None:
        """Stop reading the event stream and close the HTTP client."""
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
        self._reader_task = None

        if self.client is not None:
            await self.client.aclose()
            self.client = None
            self._endpoint = None
            await self._dispatch_close()

    async def _read_loop(self, endpoint_future: asyncio.Future) -> None:
        """Consume the event stream, resolving the endpoint and dispatching messages."""
        try:
            async with self.client.stream(
                "GET", self.url, headers={"Accept": "text/event-stream"}, timeout=STREAM_TIMEOUT
            ) as response:
                if response.status_code != 200:
                    raise TransportError(
                        f"SSE connection failed with status code {response.status_code}"
                    )

                async for event in iter_sse_events(response.aiter_lines()):
                    if event.event == "endpoint":
                        if not endpoint_future.done():
                            endpoint_future.set_result(self._resolve_endpoint(event.data))
                    elif event.event == "message":
                        await self._handle_message(event.data)

        except asyncio.CancelledError:
            raise

        except Exception as e:
            error = e if isinstance(e, TransportError) else TransportError(f"SSE stream error: {str(e)}")
            if not endpoint_future.done():
                endpoint_future.set_exception(error)
                return
            self._logger.error(error.message)
            await self._dispatch_error(error)
            await self._dispatch_close()
            return

        if not endpoint_future.done():
            endpoint_future.set_exception(
                TransportError("SSE stream closed before the endpoint event")
            )
            return

        self._logger.debug("SSE stream closed by server")
        await self._dispatch_close()

    def _resolve_endpoint(self, data: str) -> httpx.URL:
        endpoint = self.url.join(data.strip())
        if (endpoint.scheme, endpoint.host, endpoint.port) != (self.url.scheme, self.url.host, self.url.port):
            raise TransportError(f"Endpoint origin does not match connection origin: {endpoint}")
        return endpoint

    async def _handle_message(self, data: str) -> None:
        try:
            message = parse_message(data)
        except MessageValidationError as e:
            self._logger.error(f"Invalid message in SSE event: {e.message}")
            await self._dispatch_error(e)
            return
        await self._dispatch_message(message)
