"""
mcpconnect command-line interface.

Builds a transport from command-line flags or a configuration file and
uses it to inspect an MCP server. Built using Typer and Rich.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from mcpconnect import __version__
from mcpconnect.client import Client, ClientError
from mcpconnect.config import ConfigError, get_server_options, load_config
from mcpconnect.factory import TransportCreationError, TransportOptions, create_transport
from mcpconnect.log import setup_logging
from mcpconnect.transport import StdioClientTransport, Transport


# Create the Typer app
app = typer.Typer(
    name="mcpconnect",
    help="Connect to MCP servers over stdio, SSE or streamable HTTP",
    add_completion=False,
)

# Create the console for rich output
console = Console()
err_console = Console(stderr=True)


def parse_headers(values: Optional[List[str]]) -> Optional[Dict[str, str]]:
    """
    Parse ``Name: value`` header flags.

    Raises:
        typer.BadParameter: If a header has no colon or an empty name
    """
    if not values:
        return None

    headers: Dict[str, str] = {}
    for value in values:
        name, separator, content = value.partition(":")
        if not separator or not name.strip():
            raise typer.BadParameter(f"Invalid header (expected 'Name: value'): {value}")
        headers[name.strip()] = content.strip()
    return headers


def infer_transport_type(command: Optional[str], url: Optional[str]) -> str:
    """
    Pick a transport when none was given.

    A command means stdio. A URL whose path ends in /mcp means streamable
    HTTP; any other URL means SSE.
    """
    if command or not url:
        return "stdio"
    path = url.split("?", 1)[0].rstrip("/")
    if path.endswith("/mcp"):
        return "http"
    return "sse"


def build_options(
    transport: Optional[str],
    command: Optional[str],
    args: Optional[List[str]],
    url: Optional[str],
    headers: Optional[List[str]],
    insecure: bool,
    config: Optional[Path],
    server: Optional[str],
) -> TransportOptions:
    """
    Combine configuration file settings with command-line flags.

    Flags given on the command line take precedence over the file.
    """
    if config is not None or server is not None:
        options = get_server_options(load_config(config), server)
    else:
        options = TransportOptions(transport_type=transport or infer_transport_type(command, url))

    updates: Dict[str, Any] = {}
    if transport is not None:
        updates["transport_type"] = transport
    if command is not None:
        updates["command"] = command
    if args:
        updates["args"] = list(args)
    if url is not None:
        updates["url"] = url
    parsed_headers = parse_headers(headers)
    if parsed_headers:
        updates["headers"] = {**(options.headers or {}), **parsed_headers}
    if insecure:
        updates["disable_ssl_verification"] = True

    return options.model_copy(update=updates)


def run_async(func, *args, **kwargs):
    """
    Run an async function to completion.

    Returns:
        Result of the async function
    """
    return asyncio.run(func(*args, **kwargs))


def _describe_rows(description: Dict[str, Any]) -> List[List[str]]:
    rows = []
    for key, value in description.items():
        if key == "env" and value is not None:
            rendered = f"{len(value)} variables"
        elif isinstance(value, (list, dict)):
            rendered = json.dumps(value)
        else:
            rendered = "None" if value is None else str(value)
        rows.append([key, rendered])
    return rows


def _make_transport(options: TransportOptions) -> Transport:
    transport = create_transport(options)
    if isinstance(transport, StdioClientTransport):
        transport.on_stderr = lambda line: err_console.print(f"[dim]{line}[/]", highlight=False)
    return transport


async def _server_info(options: TransportOptions) -> Dict[str, Any]:
    async with Client(_make_transport(options)) as client:
        return {
            "server_info": client.server_info.model_dump(),
            "protocol_version": client.protocol_version,
            "capabilities": client.server_capabilities,
            "session_id": client.session_id,
            "instructions": client.instructions,
        }


async def _list_tools(options: TransportOptions) -> List[Dict[str, Any]]:
    async with Client(_make_transport(options)) as client:
        return await client.list_tools()


# Shared option definitions
TransportOption = typer.Option(None, "--transport", "-t", help="Transport type (stdio, sse, http)")
CommandOption = typer.Option(None, "--command", "-c", help="Server command (for stdio transport)")
ArgOption = typer.Option(None, "--arg", "-a", help="Server argument, repeatable (for stdio transport)")
UrlOption = typer.Option(None, "--url", "-u", help="Server URL (for sse and http transports)")
HeaderOption = typer.Option(None, "--header", "-H", help="HTTP header 'Name: value', repeatable")
InsecureOption = typer.Option(False, "--insecure", help="Accept unverified certificates on https URLs")
ConfigOption = typer.Option(None, "--config", help="Path to a server configuration file")
ServerOption = typer.Option(None, "--server", "-s", help="Server name from the configuration file")
FormatOption = typer.Option("table", "--format", "-f", help="Output format (table, json)")


def _fail(message: str) -> None:
    console.print(f"[bold red]{message}[/]")
    raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
):
    """
    Connect to MCP servers over stdio, SSE or streamable HTTP.
    """
    if version:
        console.print(f"mcpconnect version: {__version__}")
        raise typer.Exit()

    setup_logging("DEBUG" if debug else "WARNING")

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command("describe")
def describe(
    transport: Optional[str] = TransportOption,
    command: Optional[str] = CommandOption,
    arg: Optional[List[str]] = ArgOption,
    url: Optional[str] = UrlOption,
    header: Optional[List[str]] = HeaderOption,
    insecure: bool = InsecureOption,
    config: Optional[Path] = ConfigOption,
    server: Optional[str] = ServerOption,
    format: str = FormatOption,
):
    """
    Build the transport and show how it was constructed, without connecting.
    """
    try:
        options = build_options(transport, command, arg, url, header, insecure, config, server)
        description = create_transport(options).describe()
    except (ConfigError, TransportCreationError) as e:
        _fail(e.message)

    if format == "json":
        if description.get("env") is not None:
            description["env"] = sorted(description["env"])
        console.print_json(json.dumps(description))
        return

    table = Table(title="Transport")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    for row in _describe_rows(description):
        table.add_row(*row)
    console.print(table)


@app.command("connect")
def connect(
    transport: Optional[str] = TransportOption,
    command: Optional[str] = CommandOption,
    arg: Optional[List[str]] = ArgOption,
    url: Optional[str] = UrlOption,
    header: Optional[List[str]] = HeaderOption,
    insecure: bool = InsecureOption,
    config: Optional[Path] = ConfigOption,
    server: Optional[str] = ServerOption,
    format: str = FormatOption,
):
    """
    Connect to a server and show its information.
    """
    try:
        options = build_options(transport, command, arg, url, header, insecure, config, server)
        info = run_async(_server_info, options)
    except (ConfigError, TransportCreationError) as e:
        _fail(e.message)
    except ClientError as e:
        _fail(f"Client error: {e.message}")

    if format == "json":
        console.print_json(json.dumps(info))
        return

    table = Table(title="Server Information")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Name", info["server_info"]["name"])
    table.add_row("Version", info["server_info"]["version"])
    table.add_row("Protocol Version", info["protocol_version"] or "None")
    table.add_row("Session ID", info["session_id"] or "None")
    table.add_row("Capabilities", ", ".join(sorted(info["capabilities"])) or "None")
    console.print(table)


@app.command("tools")
def tools(
    transport: Optional[str] = TransportOption,
    command: Optional[str] = CommandOption,
    arg: Optional[List[str]] = ArgOption,
    url: Optional[str] = UrlOption,
    header: Optional[List[str]] = HeaderOption,
    insecure: bool = InsecureOption,
    config: Optional[Path] = ConfigOption,
    server: Optional[str] = ServerOption,
    format: str = FormatOption,
):
    """
    List the tools a server offers.
    """
    try:
        options = build_options(transport, command, arg, url, header, insecure, config, server)
        tool_list = run_async(_list_tools, options)
    except (ConfigError, TransportCreationError) as e:
        _fail(e.message)
    except ClientError as e:
        _fail(f"Client error: {e.message}")

    if format == "json":
        console.print_json(json.dumps(tool_list))
        return

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="green")
    for tool in tool_list:
        table.add_row(tool.get("name", ""), tool.get("description", "") or "")
    console.print(table)


if __name__ == "__main__":
    app()
