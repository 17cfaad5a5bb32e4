import logging

logger = logging.getLogger(__name__)

DEFAULT_NAME = "World"


def get_value(data, *path, default=None):
    """Walk nested objects by key. Any missing key or non-object step yields the default."""
    current = data
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def get_str(data, *path, default=None):
    value = get_value(data, *path)
    if isinstance(value, str):
        return value
    return default


class GreetingProcessor:
    def __init__(self, default_name=DEFAULT_NAME):
        self.default_name = default_name

    def _resolve_name(self, params, *path):
        name = get_str(params, *path)
        if name is None:
            logger.debug(f"No usable string at params.{'.'.join(path)}, greeting {self.default_name}")
            return self.default_name
        return name

    def name_from_arguments(self, params):
        """tools/call style: the name lives under params.arguments.name"""
        return self._resolve_name(params, "arguments", "name")

    def name_from_params(self, params):
        """call_tool style: the name lives directly under params.name"""
        return self._resolve_name(params, "name")

    def greeting(self, name):
        return f"Hello, {name}! This is a greeting from the MCP server."

    def handshake_greeting(self, name):
        return f"Hello, {name}! Strict handshake successful."
