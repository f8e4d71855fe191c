"""
MCP method names and the handshake models the client needs.

Only the initialize exchange is modelled; results of the other methods
are passed through to callers as plain dictionaries.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


LATEST_PROTOCOL_VERSION = "2025-03-26"


class MCPMethod(str, Enum):
    """Standard MCP method names."""

    # Core methods
    INITIALIZE = "initialize"
    PING = "ping"

    # Tool methods
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"

    # Prompt methods
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"

    # Resource methods
    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"

    # Notification methods
    INITIALIZED = "notifications/initialized"
    CANCELLED = "notifications/cancelled"


class Implementation(BaseModel):
    """Name and version of a client or server implementation."""

    name: str = Field(..., description="Implementation name")
    version: str = Field(..., description="Implementation version")


class InitializeParams(BaseModel):
    """Parameters for the initialize request."""

    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(
        LATEST_PROTOCOL_VERSION, alias="protocolVersion", description="Protocol version requested"
    )
    capabilities: Dict[str, Any] = Field(default_factory=dict, description="Client capabilities")
    client_info: Implementation = Field(..., alias="clientInfo", description="Client information")


class InitializeResult(BaseModel):
    """Result of the initialize request."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    protocol_version: str = Field(..., alias="protocolVersion", description="Negotiated protocol version")
    capabilities: Dict[str, Any] = Field(default_factory=dict, description="Server capabilities")
    server_info: Implementation = Field(..., alias="serverInfo", description="Server information")
    instructions: Optional[str] = Field(None, description="Optional usage instructions")
