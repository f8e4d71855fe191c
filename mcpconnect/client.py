"""
Client session over any transport.

This module correlates requests with responses by ID, performs the
initialize handshake, and offers helpers for the common MCP methods.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import structlog

from mcpconnect import __version__
from mcpconnect.protocol import (
    BatchMessage,
    Error,
    ErrorCode,
    Implementation,
    InitializeParams,
    InitializeResult,
    MCPMethod,
    Message,
    Notification,
    Request,
    Response,
)
from mcpconnect.transport import (
    StreamableHTTPClientTransport,
    Transport,
    TransportError,
)


NotificationHandler = Callable[[Notification], Awaitable[None]]


class ClientError(Exception):
    """Exception raised for client-related errors."""

    def __init__(self, message: str, error_code: Optional[int] = None, data: Optional[Any] = None):
        """
        Initialize a client error.

        Args:
            message: Error message
            error_code: Optional error code
            data: Optional error data
        """
        self.message = message
        self.error_code = error_code
        self.data = data
        super().__init__(message)


class Client:
    """
    Client for interacting with an MCP server.

    The client owns the transport it is given: ``connect()`` starts it and
    ``close()`` closes it.
    """

    def __init__(
        self,
        transport: Transport,
        client_info: Optional[Implementation] = None,
        request_timeout: float = 60.0,
    ) -> None:
        """
        Initialize the client.

        Args:
            transport: Transport to communicate over, not yet started
            client_info: Name and version sent during initialization
            request_timeout: Default seconds to wait for a response
        """
        self.transport = transport
        self.client_info = client_info or Implementation(name="mcpconnect", version=__version__)
        self.request_timeout = request_timeout
        self.server_info: Optional[Implementation] = None
        self.server_capabilities: Dict[str, Any] = {}
        self.protocol_version: Optional[str] = None
        self.instructions: Optional[str] = None
        self._pending: Dict[Union[str, int], asyncio.Future] = {}
        self._notification_handlers: Dict[str, NotificationHandler] = {}
        self._next_id = 0
        self._connected = False
        self.logger = structlog.get_logger("mcpconnect.client")

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def session_id(self) -> Optional[str]:
        return self.transport.session_id

    async def connect(self) -> InitializeResult:
        """
        Start the transport and perform the initialize handshake.

        Raises:
            ClientError: If the transport cannot be started or initialization fails
        """
        if self._connected:
            raise ClientError("Client is already connected")

        self.transport.on_message = self._handle_message
        self.transport.on_error = self._handle_error
        self.transport.on_close = self._handle_close

        try:
            await self.transport.start()
        except TransportError as e:
            raise ClientError(f"Failed to connect: {e.message}", e.code)
        self._connected = True

        try:
            return await self.initialize()
        except ClientError:
            await self.close()
            raise

    async def initialize(self) -> InitializeResult:
        """Send ``initialize`` followed by the ``initialized`` notification."""
        params = InitializeParams(client_info=self.client_info)
        raw = await self.request(MCPMethod.INITIALIZE, params.model_dump(by_alias=True))

        try:
            result = InitializeResult.model_validate(raw)
        except ValueError as e:
            raise ClientError(f"Invalid initialize result: {str(e)}", ErrorCode.INVALID_PARAMS)

        self.server_info = result.server_info
        self.server_capabilities = result.capabilities
        self.protocol_version = result.protocol_version
        self.instructions = result.instructions
        if isinstance(self.transport, StreamableHTTPClientTransport):
            self.transport.protocol_version = result.protocol_version

        await self.notify(MCPMethod.INITIALIZED)
        self.logger.info(
            "Connected to server",
            server=result.server_info.name,
            version=result.server_info.version,
            protocol_version=result.protocol_version,
        )
        return result

    async def request(
        self,
        method: Union[MCPMethod, str],
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Send a request and wait for its result.

        Raises:
            ClientError: If not connected, the request fails, times out, or the server returns an error
        """
        if not self._connected:
            raise ClientError("Not connected to server")

        method_name = method.value if isinstance(method, MCPMethod) else method
        request_id = self._get_next_id()
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self.transport.send(Request(id=request_id, method=method_name, params=params))
            response: Response = await asyncio.wait_for(future, timeout or self.request_timeout)
        except TransportError as e:
            raise ClientError(e.message, e.code, e.data)
        except asyncio.TimeoutError:
            await self._cancel_quietly(request_id)
            raise ClientError(f"Request timed out: {method_name}", ErrorCode.REQUEST_TIMEOUT)
        finally:
            self._pending.pop(request_id, None)

        if response.error is not None:
            raise ClientError(response.error.message, response.error.code, response.error.data)
        return response.result

    async def notify(
        self,
        method: Union[MCPMethod, str],
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Send a notification.

        Raises:
            ClientError: If not connected or the transport fails
        """
        if not self._connected:
            raise ClientError("Not connected to server")

        method_name = method.value if isinstance(method, MCPMethod) else method
        try:
            await self.transport.send(Notification(method=method_name, params=params))
        except TransportError as e:
            raise ClientError(e.message, e.code, e.data)

    async def ping(self) -> None:
        await self.request(MCPMethod.PING)

    async def list_tools(self) -> List[Dict[str, Any]]:
        result = await self.request(MCPMethod.TOOLS_LIST)
        return list((result or {}).get("tools", []))

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.request(MCPMethod.TOOLS_CALL, {"name": name, "arguments": arguments or {}})

    async def list_resources(self) -> List[Dict[str, Any]]:
        result = await self.request(MCPMethod.RESOURCES_LIST)
        return list((result or {}).get("resources", []))

    async def list_prompts(self) -> List[Dict[str, Any]]:
        result = await self.request(MCPMethod.PROMPTS_LIST)
        return list((result or {}).get("prompts", []))

    def register_notification_handler(self, method: str, handler: NotificationHandler) -> None:
        """
        Register a handler for server notifications.

        Args:
            method: Notification method
            handler: Coroutine function receiving the notification
        """
        self._notification_handlers[method] = handler

    async def close(self) -> None:
        """Close the transport and fail any outstanding requests."""
        self._connected = False
        await self.transport.close()
        self._fail_pending(ClientError("Connection closed", ErrorCode.CONNECTION_CLOSED))

    def _get_next_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def _cancel_quietly(self, request_id: Union[str, int]) -> None:
        try:
            await self.notify(MCPMethod.CANCELLED, {"requestId": request_id, "reason": "timeout"})
        except ClientError as e:
            self.logger.debug("Could not send cancellation", request_id=request_id, error=e.message)

    def _fail_pending(self, error: ClientError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _handle_message(self, message: Union[Message, BatchMessage]) -> None:
        if isinstance(message, BatchMessage):
            for item in message:
                await self._handle_message(item)
            return

        if isinstance(message, Response):
            future = self._pending.get(message.id)
            if future is None or future.done():
                self.logger.warning("Received response with unknown ID", id=message.id)
                return
            future.set_result(message)

        elif isinstance(message, Request):
            await self._handle_server_request(message)

        elif isinstance(message, Notification):
            handler = self._notification_handlers.get(message.method)
            if handler is None:
                self.logger.debug("Unhandled notification", method=message.method)
                return
            await handler(message)

    async def _handle_server_request(self, request: Request) -> None:
        if request.method == MCPMethod.PING.value:
            reply = Response(id=request.id, result={})
        else:
            reply = Response(
                id=request.id,
                error=Error(
                    code=ErrorCode.METHOD_NOT_FOUND,
                    message=f"Method not found: {request.method}",
                ),
            )
        try:
            await self.transport.send(reply)
        except TransportError as e:
            self.logger.error("Failed to answer server request", method=request.method, error=e.message)

    async def _handle_error(self, error: Exception) -> None:
        self.logger.warning("Transport error", error=str(error))

    async def _handle_close(self) -> None:
        self._connected = False
        self._fail_pending(ClientError("Connection closed", ErrorCode.CONNECTION_CLOSED))

    async def __aenter__(self) -> "Client":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
