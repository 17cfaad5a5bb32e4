import io
import json
import logging

import pytest
import yaml

from hello_mcp_server.mcp_server import handle_jsonrpc_request
from hello_mcp_server.stdio_server import run_stdio_server


@pytest.fixture
def run_lines():
    """
    Feeds raw lines through the stdio loop and returns the parsed JSON of every line written to stdout.
    """

    def _run(*lines):
        stdin = io.StringIO("".join(line if line.endswith("\n") else line + "\n" for line in lines))
        stdout = io.StringIO()
        run_stdio_server(handle_jsonrpc_request, stdin=stdin, stdout=stdout)
        output = stdout.getvalue()
        assert output == "" or output.endswith("\n")
        return [json.loads(out_line) for out_line in output.splitlines()]

    return _run


@pytest.fixture
def call():
    """Dispatches a single request dict directly, bypassing the stdio loop."""

    def _call(method, params=None, **extra):
        data = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            data["params"] = params
        data.update(extra)
        return handle_jsonrpc_request(data)

    return _call


@pytest.fixture
def tmp_config(tmp_path):
    """Writes a YAML config file and returns its path."""

    def _write(config):
        config_path = tmp_path / "config.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return str(config_path)

    return _write


@pytest.fixture
def clean_env(monkeypatch):
    for var in ("HELLO_MCP_CONFIG", "HELLO_MCP_LOG_DIR", "HELLO_MCP_LOG_LEVEL", "HELLO_MCP_LOG_STDERR"):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture
def package_logger():
    """Restores the package logger after a test installs handlers on it."""
    package_logger = logging.getLogger("hello_mcp_server")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield package_logger
    for handler in package_logger.handlers:
        if handler not in handlers:
            handler.close()
    package_logger.handlers = handlers
    package_logger.setLevel(level)
