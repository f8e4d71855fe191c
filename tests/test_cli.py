"""
Tests for the mcpconnect command-line interface.
"""

import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mcpconnect import __version__
from mcpconnect.cli import app, build_options, infer_transport_type, parse_headers


ECHO_SERVER = str(Path(__file__).parent / "fixtures" / "echo_server.py")

runner = CliRunner()


def flat(text: str) -> str:
    """Collapse whitespace so wrapped console output can be matched."""
    return " ".join(text.split())


class TestHelpers:
    """Tests for option parsing helpers."""

    def test_parse_headers(self):
        assert parse_headers(None) is None
        assert parse_headers(["Authorization: Bearer abc", "X-Trace:1"]) == {
            "Authorization": "Bearer abc",
            "X-Trace": "1",
        }

    def test_parse_headers_invalid(self):
        import typer

        with pytest.raises(typer.BadParameter):
            parse_headers(["no-colon"])

    @pytest.mark.parametrize(
        "command,url,expected",
        [
            ("npx", None, "stdio"),
            (None, None, "stdio"),
            (None, "https://example.com/mcp", "http"),
            (None, "https://example.com/mcp/?x=1", "http"),
            (None, "http://localhost:3001/sse", "sse"),
        ],
    )
    def test_infer_transport_type(self, command, url, expected):
        assert infer_transport_type(command, url) == expected

    def test_flags_override_config(self, tmp_path):
        path = tmp_path / "servers.yaml"
        path.write_text(
            "servers:\n"
            "  remote:\n"
            "    type: http\n"
            "    url: https://example.com/mcp\n"
            "    headers:\n"
            "      X-Env: prod\n"
        )

        options = build_options(None, None, None, "https://other.example.com/mcp", ["X-Trace: 1"], True, path, None)

        assert options.transport_type == "http"
        assert options.url == "https://other.example.com/mcp"
        assert options.headers == {"X-Env": "prod", "X-Trace": "1"}
        assert options.disable_ssl_verification is True


class TestCommands:
    """Tests for the CLI commands."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_describe_stdio_json(self):
        result = runner.invoke(
            app,
            ["describe", "-c", sys.executable, "-a", ECHO_SERVER, "--format", "json"],
        )

        assert result.exit_code == 0
        description = json.loads(result.stdout)
        assert description["type"] == "stdio"
        assert description["command"] == sys.executable
        assert description["args"] == [ECHO_SERVER]
        assert description["stderr"] == "pipe"
        assert "PATH" in description["env"]

    def test_describe_http_table(self):
        result = runner.invoke(
            app,
            ["describe", "-u", "https://example.com/mcp", "-H", "Authorization: Bearer abc", "--insecure"],
        )

        assert result.exit_code == 0
        output = flat(result.stdout)
        assert "http" in output
        assert "https://example.com/mcp" in output
        assert "unverified-tls" in output

    def test_describe_sse_without_url(self):
        result = runner.invoke(app, ["describe", "-t", "sse"])

        assert result.exit_code == 1
        assert (
            "Failed to create transport: URL must be provided for SSE or HTTP transport types."
            in flat(result.stdout)
        )

    def test_describe_unsupported_type(self):
        result = runner.invoke(app, ["describe", "-t", "websocket", "-u", "ws://example.com"])

        assert result.exit_code == 1
        assert "Failed to create transport: Unsupported transport type: websocket" in flat(result.stdout)

    def test_describe_missing_config(self, tmp_path):
        result = runner.invoke(app, ["describe", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Configuration file not found" in flat(result.stdout)

    def test_connect_stdio(self):
        result = runner.invoke(
            app,
            ["connect", "-c", sys.executable, "-a", ECHO_SERVER, "--format", "json"],
        )

        assert result.exit_code == 0
        assert '"name": "echo-server"' in result.stdout
        assert '"protocol_version": "2025-03-26"' in result.stdout

    def test_tools_stdio(self):
        result = runner.invoke(app, ["tools", "-c", sys.executable, "-a", ECHO_SERVER])

        assert result.exit_code == 0
        output = flat(result.stdout)
        assert "echo" in output
        assert "Echo the input" in output

    def test_connect_failure(self):
        result = runner.invoke(app, ["connect", "-c", "/nonexistent/mcp-server-binary"])

        assert result.exit_code == 1
        assert "Client error: Failed to connect" in flat(result.stdout)
