import copy
import logging
import os
import sys
from types import MappingProxyType

import yaml

from hello_mcp_server.processor.greeting_processor import GreetingProcessor, get_str
from hello_mcp_server.stdio_server import run_stdio_server

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


# Load configuration from environment variables, then YAML as fallback
def load_config(config_path=None):
    config_path = config_path or os.environ.get("HELLO_MCP_CONFIG") or os.path.join(os.path.dirname(__file__), "config.yaml")
    config = {}
    try:
        with open(config_path) as file:
            config = yaml.safe_load(file) or {}
    except FileNotFoundError:
        config = {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML configuration: {e}") from e
    if not isinstance(config, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")

    file_logging = config.get("logging") or {}
    if not isinstance(file_logging, dict):
        raise ConfigError("'logging' section must be a mapping")
    default_dir = os.path.dirname(os.path.abspath(sys.argv[0])) if sys.argv and sys.argv[0] else os.getcwd()

    # Environment variable overrides
    log_dir = os.environ.get("HELLO_MCP_LOG_DIR") or file_logging.get("directory") or default_dir
    log_level = os.environ.get("HELLO_MCP_LOG_LEVEL") or file_logging.get("level") or "DEBUG"
    log_stderr = os.environ.get("HELLO_MCP_LOG_STDERR")
    if log_stderr is not None:
        log_stderr = log_stderr.lower() in ["1", "true", "yes"]
    else:
        log_stderr = file_logging.get("stderr", True)
        if isinstance(log_stderr, str):
            log_stderr = log_stderr.lower() in ["1", "true", "yes"]

    return {
        "logging": {
            "directory": log_dir,
            "basename": file_logging.get("basename", "hello-mcp"),
            "level": str(log_level).upper(),
            "stderr": bool(log_stderr),
        }
    }


def configure_logging(logging_config):
    """Sends package logs to <directory>/<basename>.log and, optionally, to stderr. Never to stdout."""
    package_logger = logging.getLogger("hello_mcp_server")
    package_logger.setLevel(logging_config["level"])
    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    log_path = os.path.join(logging_config["directory"], f"{logging_config['basename']}.log")
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(formatter)
    package_logger.addHandler(file_handler)

    if logging_config["stderr"]:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        package_logger.addHandler(stderr_handler)
    return package_logger


# Server info
SERVER_INFO = {"name": "hello-world-mcp", "version": "1.0.1"}

# Server capabilities
SERVER_CAPABILITIES = {"tools": {}, "resources": {}, "prompts": {}}

# Protocol version used when the client does not ask for one
DEFAULT_PROTOCOL_VERSION = "2024-11-05"

METHOD_NOT_FOUND = -32601

# Available tools
TOOLS_LIST = [
    {
        "name": "hello",
        "description": "Returns a friendly greeting",
        "inputSchema": {
            "type": "object",
            "properties": {"name": {"type": "string", "description": "The name to greet"}},
            "required": ["name"],
        },
    }
]

# Catalog served to clients still using list_tools
LEGACY_TOOLS_LIST = [
    {
        "name": "greet",
        "description": "Returns a friendly greeting.",
        "inputSchema": {
            "type": "object",
            "properties": {"name": {"type": "string", "description": "Name to greet"}},
            "required": ["name"],
        },
    }
]

greeting_processor = GreetingProcessor()


def handle_initialize(params):
    logger.info("Initializing MCP server...")
    client_version = get_str(params, "protocolVersion", default=DEFAULT_PROTOCOL_VERSION)
    logger.info(f"Client requested protocol version: {client_version}")
    return {
        "protocolVersion": client_version,
        "capabilities": {key: dict(value) for key, value in SERVER_CAPABILITIES.items()},
        "serverInfo": dict(SERVER_INFO),
    }


def handle_tools_list(params):
    logger.info("Handling tools/list request...")
    return {"tools": copy.deepcopy(TOOLS_LIST)}


def handle_tools_call(params):
    logger.info("Handling tools/call request...")
    name = greeting_processor.name_from_arguments(params)
    return {"content": [{"type": "text", "text": greeting_processor.greeting(name)}], "isError": False}


def handle_initialized_notification(params):
    logger.info("Received notifications/initialized. Handshake complete.")


def handle_list_tools(params):
    return {"tools": copy.deepcopy(LEGACY_TOOLS_LIST)}


def handle_call_tool(params):
    name = greeting_processor.name_from_params(params)
    return {"content": [{"type": "text", "text": greeting_processor.handshake_greeting(name)}]}


# Methods answered with a result, with or without a request id
RESPONSE_HANDLERS = MappingProxyType(
    {
        "initialize": handle_initialize,
        "tools/list": handle_tools_list,
        "tools/call": handle_tools_call,
        "list_tools": handle_list_tools,
        "call_tool": handle_call_tool,
    }
)

# Methods that never produce a response
NOTIFICATION_HANDLERS = MappingProxyType(
    {
        "notifications/initialized": handle_initialized_notification,
    }
)


def build_response(data, result=None, error=None):
    response = {"jsonrpc": "2.0"}
    if result is not None:
        response["result"] = result
    if error is not None:
        response["error"] = error
    if "id" in data:
        response["id"] = data["id"]
    return response


def handle_jsonrpc_request(data):
    """
    Routes one parsed request to its handler.
    Returns the response dict to send, or None when the request gets no response.
    """
    method = data.get("method")
    params = data.get("params")

    if method in NOTIFICATION_HANDLERS:
        NOTIFICATION_HANDLERS[method](params)
        return None

    handler = RESPONSE_HANDLERS.get(method)
    if handler is not None:
        return build_response(data, result=handler(params))

    # Unknown method: only calls get an error, unknown notifications are ignored
    if "id" not in data:
        return None
    return build_response(data, error={"code": METHOD_NOT_FOUND, "message": f"Method not found: {method}"})


def main():
    config = load_config()
    configure_logging(config["logging"])
    logger.info("Hello World MCP Server starting (V2 - Strict)...")
    run_stdio_server(handle_jsonrpc_request)


if __name__ == "__main__":
    main()
