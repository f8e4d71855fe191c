"""
Unit tests for server configuration files.
"""

import json

import pytest

from mcpconnect.config import ConfigError, get_server_options, get_servers, load_config


YAML_CONFIG = """
default_server: remote
servers:
  local:
    command: npx
    args: ["-y", "@modelcontextprotocol/server-everything"]
    env:
      DEBUG: "1"
  remote:
    type: streamable-http
    url: https://example.com/mcp
    headers:
      Authorization: Bearer abc
    disableSSLVerification: true
  legacy:
    url: http://localhost:3001/sse
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "mcpconnect.yaml"
    path.write_text(YAML_CONFIG)
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_yaml(self, config_file):
        config = load_config(config_file)
        assert set(get_servers(config)) == {"local", "remote", "legacy"}

    def test_load_json_mcp_servers(self, tmp_path):
        path = tmp_path / "servers.json"
        path.write_text(json.dumps({"mcpServers": {"everything": {"command": "uvx", "args": ["srv"]}}}))

        options = get_server_options(load_config(path))
        assert options.transport_type == "stdio"
        assert options.command == "uvx"
        assert options.args == ["srv"]

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("servers: [unclosed")
        with pytest.raises(ConfigError, match="Error loading configuration"):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(path)

    def test_no_default_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr("mcpconnect.config.default_config_paths", lambda: [tmp_path / "none.yaml"])
        assert load_config() == {}


class TestServerOptions:
    """Tests for get_server_options."""

    def test_default_server(self, config_file):
        options = get_server_options(load_config(config_file))

        assert options.transport_type == "http"
        assert options.url == "https://example.com/mcp"
        assert options.headers == {"Authorization": "Bearer abc"}
        assert options.disable_ssl_verification is True

    def test_named_stdio_server(self, config_file):
        options = get_server_options(load_config(config_file), "local")

        assert options.transport_type == "stdio"
        assert options.env == {"DEBUG": "1"}

    def test_url_without_type_is_sse(self, config_file):
        options = get_server_options(load_config(config_file), "legacy")
        assert options.transport_type == "sse"

    def test_first_server_without_default(self):
        config = {"servers": {"a": {"command": "a"}, "b": {"command": "b"}}}
        assert get_server_options(config).command == "a"

    def test_unknown_server(self, config_file):
        with pytest.raises(ConfigError, match="Server not found"):
            get_server_options(load_config(config_file), "nope")

    def test_no_servers(self):
        with pytest.raises(ConfigError, match="No servers"):
            get_server_options({})

    def test_invalid_entry(self):
        with pytest.raises(ConfigError, match="Invalid configuration for server bad"):
            get_server_options({"servers": {"bad": {"command": "x", "args": "not-a-list"}}}, "bad")
