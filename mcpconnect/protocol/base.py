"""
Base JSON-RPC 2.0 message models.

This module defines the message types exchanged over every transport,
implementing the JSON-RPC 2.0 specification with Pydantic models.
"""

from enum import IntEnum
from typing import Any, Dict, List, Optional, Union, Literal

from pydantic import BaseModel, Field, RootModel, model_validator


class ErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Transport level codes
    TRANSPORT_ERROR = -32000
    CONNECTION_CLOSED = -32001
    REQUEST_TIMEOUT = -32002


class Error(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Optional[Any] = Field(None, description="Additional error data")

    def __str__(self) -> str:
        """String representation of the error."""
        if self.data:
            return f"code: {self.code}, message: {self.message}, data: {self.data}"
        return f"code: {self.code}, message: {self.message}"


class Request(BaseModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: Literal["2.0"] = Field("2.0", description="JSON-RPC version")
    id: Union[str, int] = Field(..., description="Request ID")
    method: str = Field(..., description="Method name")
    params: Optional[Dict[str, Any]] = Field(None, description="Method parameters")


class Response(BaseModel):
    """JSON-RPC 2.0 response."""

    jsonrpc: Literal["2.0"] = Field("2.0", description="JSON-RPC version")
    id: Optional[Union[str, int]] = Field(..., description="Request ID")
    result: Optional[Any] = Field(None, description="Result data")
    error: Optional[Error] = Field(None, description="Error information")

    @model_validator(mode="after")
    def validate_result_or_error(self) -> "Response":
        """Validate that response has either result or error, not both."""
        if self.result is not None and self.error is not None:
            raise ValueError("Response cannot have both result and error")
        if self.result is None and self.error is None:
            raise ValueError("Response must have either result or error")
        return self


class Notification(BaseModel):
    """JSON-RPC 2.0 notification (request without ID)."""

    jsonrpc: Literal["2.0"] = Field("2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name")
    params: Optional[Dict[str, Any]] = Field(None, description="Method parameters")


Message = Union[Request, Response, Notification]


class BatchMessage(RootModel[List[Message]]):
    """JSON-RPC 2.0 batch of messages, in either direction."""

    def __iter__(self):
        """Allow iterating through messages."""
        return iter(self.root)

    def __len__(self) -> int:
        """Return the number of messages."""
        return len(self.root)
