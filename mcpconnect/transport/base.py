"""
Client transport abstractions.

This module defines the base Transport interface shared by the stdio,
SSE and streamable HTTP client transports. A transport is constructed
without performing any I/O; the connection is only opened by ``start()``.
"""

import abc
import enum
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from pydantic import BaseModel, Field

from mcpconnect.protocol import (
    BatchMessage,
    Error,
    ErrorCode,
    Message,
)


class TransportType(str, enum.Enum):
    """Enumeration of supported transport types."""

    STDIO = "stdio"
    SSE = "sse"
    HTTP = "http"


class TransportCapability(str, enum.Enum):
    """Capabilities that a transport may support."""

    STREAMING = "streaming"
    BATCH_REQUESTS = "batch_requests"
    BIDIRECTIONAL = "bidirectional"
    SESSIONS = "sessions"


class TransportInfo(BaseModel):
    """Information about a transport implementation."""

    type: TransportType = Field(..., description="Type of transport")
    capabilities: Set[TransportCapability] = Field(
        default_factory=set,
        description="Capabilities supported by this transport"
    )

    def supports(self, capability: TransportCapability) -> bool:
        """Check if the transport supports a specific capability."""
        return capability in self.capabilities


MessageHandler = Callable[[Union[Message, BatchMessage]], Awaitable[None]]
ErrorHandler = Callable[[Exception], Awaitable[None]]
CloseHandler = Callable[[], Awaitable[None]]


class TransportError(Exception):
    """Exception raised for transport-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
        data: Optional[Any] = None
    ) -> None:
        """
        Initialize a transport error.

        Args:
            message: Error message
            code: Error code
            data: Additional error data
        """
        self.message = message
        self.code = code
        self.data = data
        super().__init__(message)

    def to_error(self) -> Error:
        """
        Convert to a JSON-RPC Error object.

        Returns:
            Error object
        """
        return Error(code=self.code, message=self.message, data=self.data)


class Transport(abc.ABC):
    """
    Abstract base class for client transports.

    Incoming messages are delivered to ``on_message``; failures in
    background readers go to ``on_error`` and the end of the connection
    is reported through ``on_close``.
    """

    def __init__(self) -> None:
        """Initialize the transport."""
        self.on_message: Optional[MessageHandler] = None
        self.on_error: Optional[ErrorHandler] = None
        self.on_close: Optional[CloseHandler] = None
        self._close_notified = False

    @property
    @abc.abstractmethod
    def info(self) -> TransportInfo:
        """
        Get information about the transport.

        Returns:
            TransportInfo object describing the transport
        """
        ...

    @property
    def session_id(self) -> Optional[str]:
        """Session ID assigned by the server, if the transport has one."""
        return None

    @abc.abstractmethod
    def describe(self) -> Dict[str, Any]:
        """
        Return the effective construction parameters.

        Two transports built from the same configuration describe
        themselves identically.
        """
        ...

    @abc.abstractmethod
    async def start(self) -> None:
        """
        Open the connection and start receiving messages.

        Raises:
            TransportError: If the transport is already started or fails to open
        """
        ...

    @abc.abstractmethod
    async def send(self, message: Union[Message, BatchMessage]) -> None:
        """
        Send a message over the transport.

        Raises:
            TransportError: If the message cannot be sent
        """
        ...

    @abc.abstractmethod
    async def close(self) -> None:
        """Close the transport and release resources."""
        ...

    async def _dispatch_message(self, message: Union[Message, BatchMessage]) -> None:
        if self.on_message is not None:
            await self.on_message(message)

    async def _dispatch_error(self, error: Exception) -> None:
        if self.on_error is not None:
            await self.on_error(error)

    async def _dispatch_close(self) -> None:
        # Reported once per start/close cycle
        if self._close_notified:
            return
        self._close_notified = True
        if self.on_close is not None:
            await self.on_close()

    async def __aenter__(self) -> "Transport":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
