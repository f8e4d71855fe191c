"""
Server configuration files.

Servers are declared in YAML (JSON files work too) under ``servers`` or,
for files shared with other MCP tools, ``mcpServers``::

    default_server: everything
    servers:
      everything:
        command: npx
        args: ["-y", "@modelcontextprotocol/server-everything"]
      remote:
        type: streamable-http
        url: https://example.com/mcp
        headers:
          Authorization: Bearer abc
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from mcpconnect.factory import TransportOptions


def default_config_paths() -> List[Path]:
    """Locations searched when no configuration file is given."""
    return [
        Path.cwd() / "mcpconnect.yaml",
        Path.cwd() / "mcpconnect.yml",
        Path.cwd() / ".mcpconnect.yaml",
        Path.cwd() / ".mcpconnect.yml",
        Path.home() / ".mcpconnect.yaml",
        Path.home() / ".config" / "mcpconnect" / "config.yaml",
    ]


# Spellings other tools use for the transport type
TRANSPORT_TYPE_ALIASES = {
    "streamable-http": "http",
    "streamableHttp": "http",
    "streamable_http": "http",
}


class ConfigError(Exception):
    """Exception raised for unreadable or invalid configuration."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Explicit file; when omitted the default locations are tried

    Returns:
        Configuration dictionary (empty if no default file exists)

    Raises:
        ConfigError: If the explicit file is missing or any file cannot be parsed
    """
    if config_path is not None and not Path(config_path).exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    paths_to_try = [Path(config_path)] if config_path else default_config_paths()

    for path in paths_to_try:
        if not path.exists():
            continue
        try:
            with open(path, "r") as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading configuration from {path}: {str(e)}")

        if not isinstance(config, dict):
            raise ConfigError(f"Configuration in {path} must be a mapping")
        return config

    return {}


def get_servers(config: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Return the server entries of a configuration."""
    servers = config.get("servers")
    if servers is None:
        servers = config.get("mcpServers", {})
    if not isinstance(servers, dict):
        raise ConfigError("'servers' must be a mapping of server names to settings")
    return servers


def get_server_options(config: Dict[str, Any], name: Optional[str] = None) -> TransportOptions:
    """
    Build TransportOptions for one configured server.

    Without a name, ``default_server`` is used, falling back to the first
    server listed. Entries without a type are stdio when they name a
    command and SSE otherwise.

    Raises:
        ConfigError: If the server does not exist or its settings are invalid
    """
    servers = get_servers(config)
    if not servers:
        raise ConfigError("No servers defined in configuration")

    if name is None:
        name = config.get("default_server") or next(iter(servers))

    if name not in servers:
        raise ConfigError(f"Server not found in configuration: {name}")

    entry = dict(servers[name] or {})
    transport_type = (
        entry.pop("transportType", None)
        or entry.pop("transport_type", None)
        or entry.pop("type", None)
    )
    if transport_type is None:
        transport_type = "stdio" if "command" in entry else "sse"
    transport_type = TRANSPORT_TYPE_ALIASES.get(transport_type, transport_type)

    try:
        return TransportOptions.model_validate({**entry, "transportType": transport_type})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration for server {name}: {str(e)}")
