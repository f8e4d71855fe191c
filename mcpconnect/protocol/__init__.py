"""
JSON-RPC protocol package.

Message models, MCP method names and the parsing utilities shared by
the transports and the client session.
"""

from mcpconnect.protocol.base import (
    BatchMessage,
    Error,
    ErrorCode,
    Message,
    Notification,
    Request,
    Response,
)
from mcpconnect.protocol.methods import (
    LATEST_PROTOCOL_VERSION,
    Implementation,
    InitializeParams,
    InitializeResult,
    MCPMethod,
)
from mcpconnect.protocol.validation import (
    MessageValidationError,
    parse_message,
    parse_message_object,
    serialize_message,
)

__all__ = [
    # Base types
    "BatchMessage",
    "Error",
    "ErrorCode",
    "Message",
    "Notification",
    "Request",
    "Response",

    # Methods
    "LATEST_PROTOCOL_VERSION",
    "Implementation",
    "InitializeParams",
    "InitializeResult",
    "MCPMethod",

    # Validation utilities
    "MessageValidationError",
    "parse_message",
    "parse_message_object",
    "serialize_message",
]
