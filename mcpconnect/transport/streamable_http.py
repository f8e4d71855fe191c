"""
Streamable HTTP client transport.

Every client message is POSTed to a single endpoint. The server answers
with 202 Accepted, a JSON body, or an event stream carrying one or more
messages, and may assign a session ID through the ``mcp-session-id``
header which is then echoed on every later request.
"""

import asyncio
import contextlib
import logging
from typing import Any, Callable, Dict, Optional, Set, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from mcpconnect.protocol import (
    BatchMessage,
    Message,
    MessageValidationError,
    Request,
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
    HttpClientFactory,
    RequestInit,
    default_fetch,
    fetch_name,
)
from mcpconnect.transport.sse import iter_sse_events


SESSION_ID_HEADER = "mcp-session-id"
PROTOCOL_VERSION_HEADER = "mcp-protocol-version"


class StreamableHTTPTransportOptions(BaseModel):
    """Construction options for StreamableHTTPClientTransport."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    request_init: Optional[RequestInit] = Field(None, description="Options for every request")
    fetch: Optional[Callable[..., httpx.AsyncClient]] = Field(
        None, description="Fetch factory override"
    )
    session_id: Optional[str] = Field(None, description="Session to resume")


def _expects_response(message: Union[Message, BatchMessage]) -> bool:
    if isinstance(message, BatchMessage):
        return any(isinstance(item, Request) for item in message)
    return isinstance(message, Request)


class StreamableHTTPClientTransport(Transport):
    """
    Client transport over streamable HTTP.

    Constructing the transport performs no I/O; ``start()`` only creates
    the HTTP client, requests are made as messages are sent.
    """

    def __init__(
        self,
        url: Union[str, httpx.URL],
        options: Optional[StreamableHTTPTransportOptions] = None,
    ) -> None:
        """
        Initialize the streamable HTTP transport.

        Args:
            url: URL of the server's MCP endpoint
            options: Request options and fetch override
        """
        super().__init__()
        self.url = httpx.URL(str(url))
        self.options = options or StreamableHTTPTransportOptions()
        self.client: Optional[httpx.AsyncClient] = None
        self.protocol_version: Optional[str] = None
        self._session_id = self.options.session_id
        self._stream_tasks: Set[asyncio.Task] = set()
        self._logger = logging.getLogger("mcpconnect.transport.streamable_http")

    @property
    def info(self) -> TransportInfo:
        """Get information about the transport."""
        capabilities: Set[TransportCapability] = {
            TransportCapability.STREAMING,
            TransportCapability.BATCH_REQUESTS,
            TransportCapability.SESSIONS,
        }
        return TransportInfo(type=TransportType.HTTP, capabilities=capabilities)

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def fetch(self) -> HttpClientFactory:
        return self.options.fetch or default_fetch

    def describe(self) -> Dict[str, Any]:
        request_init = self.options.request_init
        return {
            "type": TransportType.HTTP.value,
            "url": str(self.url),
            "headers": dict(request_init.headers) if request_init and request_init.headers is not None else None,
            "fetch": fetch_name(self.options.fetch),
        }

    async def start(self) -> None:
        """
        Create the HTTP client.

        Raises:
            TransportError: If the transport is already started
        """
        if self.client is not None:
            raise TransportError("Streamable HTTP transport is already started")

        request_init = self.options.request_init
        headers = dict(request_init.headers) if request_init and request_init.headers else None
        self.client = self.fetch(headers=headers)
        self._close_notified = False

    def _common_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._session_id:
            headers[SESSION_ID_HEADER] = self._session_id
        if self.protocol_version:
            headers[PROTOCOL_VERSION_HEADER] = self.protocol_version
        return headers

    async def send(self, message: Union[Message, BatchMessage]) -> None:
        """
        POST a message and dispatch whatever the server replies with.

        JSON replies are dispatched before this returns; event-stream replies
        are consumed in the background.

        Raises:
            TransportError: If not connected or the server rejects the message
        """
        if self.client is None:
            raise TransportError("Not connected")

        headers = self._common_headers()
        headers["Content-Type"] = "application/json"
        headers["Accept"] = "application/json, text/event-stream"
        request = self.client.build_request(
            "POST", self.url, content=serialize_message(message), headers=headers
        )

        try:
            response = await self.client.send(request, stream=True)
        except httpx.RequestError as e:
            raise TransportError(f"HTTP request failed: {str(e)}")

        streaming = False
        try:
            session_id = response.headers.get(SESSION_ID_HEADER)
            if session_id:
                self._session_id = session_id

            if response.status_code == 202:
                return

            if response.is_error:
                await response.aread()
                if response.status_code == 404 and self._session_id:
                    self._session_id = None
                    raise TransportError(f"Session expired (HTTP 404): {response.text}")
                raise TransportError(
                    f"Error POSTing to endpoint (HTTP {response.status_code}): {response.text}"
                )

            if not _expects_response(message):
                return

            content_type = response.headers.get("content-type", "")
            if content_type.startswith("text/event-stream"):
                streaming = True
                task = asyncio.create_task(self._consume_event_stream(response))
                self._stream_tasks.add(task)
                task.add_done_callback(self._stream_tasks.discard)
            elif content_type.startswith("application/json"):
                body = await response.aread()
                try:
                    reply = parse_message(body)
                except MessageValidationError as e:
                    raise TransportError(f"Invalid JSON response: {e.message}")
                await self._dispatch_message(reply)
            else:
                raise TransportError(f"Unexpected content type: {content_type}")

        finally:
            if not streaming:
                await response.aclose()

    async def _consume_event_stream(self, response: httpx.Response) -> None:
        try:
            async for event in iter_sse_events(response.aiter_lines()):
                if event.event != "message" or not event.data:
                    continue
                try:
                    message = parse_message(event.data)
                except MessageValidationError as e:
                    self._logger.error(f"Invalid message in SSE event: {e.message}")
                    await self._dispatch_error(e)
                    continue
                await self._dispatch_message(message)

        except asyncio.CancelledError:
            raise

        except httpx.HTTPError as e:
            self._logger.error(f"Error reading response stream: {str(e)}")
            await self._dispatch_error(TransportError(f"Response stream failed: {str(e)}"))

        finally:
            await response.aclose()

    async def terminate_session(self) -> None:
        """
        Ask the server to end the current session.

        A 405 reply means the server does not support explicit termination
        and is not treated as an error.

        Raises:
            TransportError: If not connected or the server rejects the request
        """
        if self.client is None:
            raise TransportError("Not connected")
        if not self._session_id:
            return

        try:
            response = await self.client.delete(self.url, headers=self._common_headers())
        except httpx.RequestError as e:
            raise TransportError(f"HTTP request failed: {str(e)}")

        if response.is_error and response.status_code != 405:
            raise TransportError(
                f"Failed to terminate session (HTTP {response.status_code}): {response.text}"
            )
        self._session_id = None

    async def close(self) -> None:
        """Cancel in-flight response streams and close the HTTP client."""
        for task in list(self._stream_tasks):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._stream_tasks.clear()

        if self.client is not None:
            await self.client.aclose()
            self.client = None
            await self._dispatch_close()
