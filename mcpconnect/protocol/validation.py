"""
Validation utilities for JSON-RPC messages.

This module parses messages received from a server into the protocol
models and serializes outgoing messages for the wire.
"""

import json
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from mcpconnect.protocol.base import (
    BatchMessage,
    ErrorCode,
    Message,
    Notification,
    Request,
    Response,
)


class MessageValidationError(Exception):
    """Exception raised for malformed JSON-RPC messages."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_REQUEST):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


def parse_message(data: Union[str, bytes]) -> Union[Message, BatchMessage]:
    """
    Parse a JSON-RPC message from a JSON string.

    Args:
        data: JSON text containing a single message or a batch

    Returns:
        Parsed Request, Response, Notification or BatchMessage

    Raises:
        MessageValidationError: If the JSON is invalid or not JSON-RPC
    """
    try:
        parsed_data = json.loads(data)
    except json.JSONDecodeError as e:
        raise MessageValidationError(f"Invalid JSON: {str(e)}", ErrorCode.PARSE_ERROR)
    return parse_message_object(parsed_data)


def parse_message_object(
    data: Union[Dict[str, Any], List[Dict[str, Any]]]
) -> Union[Message, BatchMessage]:
    """
    Parse a JSON-RPC message from an already decoded Python object.

    Raises:
        MessageValidationError: If the object doesn't conform to JSON-RPC
    """
    if isinstance(data, list):
        if not data:
            raise MessageValidationError("Batch cannot be empty")
        return BatchMessage([_parse_single(item) for item in data])

    return _parse_single(data)


def _parse_single(data: Any) -> Message:
    if not isinstance(data, dict):
        raise MessageValidationError("JSON-RPC message must be an object or an array")

    if data.get("jsonrpc") != "2.0":
        raise MessageValidationError(f"Invalid JSON-RPC version: {data.get('jsonrpc')}")

    try:
        if "method" in data:
            if "id" in data:
                return Request(**data)
            return Notification(**data)
        if "id" in data:
            return Response(**data)
    except ValidationError as e:
        raise MessageValidationError(f"Invalid message: {str(e)}")

    raise MessageValidationError("Message is neither a request, a response nor a notification")


def serialize_message(message: Union[Message, BatchMessage]) -> str:
    """
    Serialize a message to compact JSON, without unset optional fields.

    Responses keep their ``id`` even when it is null.
    """
    if isinstance(message, BatchMessage):
        return "[" + ",".join(serialize_message(item) for item in message) + "]"
    data = message.model_dump(mode="json", exclude_none=True)
    if isinstance(message, Response):
        data["id"] = message.id
    return json.dumps(data, separators=(",", ":"))
