import json
import logging
import math
import sys

logger = logging.getLogger(__name__)


def _reject_constant(name):
    raise ValueError(f"Non-standard JSON constant: {name}")


def _parse_finite_float(text):
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def parse_request(line):
    """
    Parses one raw line into a JSON-RPC request dict.
    Returns None when the line is not strict JSON (NaN/Infinity, out-of-range numbers, nesting too deep to decode),
    not an object, or lacks a string 'jsonrpc'/'method'.
    'params' and 'id' are left untouched; an 'id' key holding null is still an id.
    """
    try:
        data = json.loads(line, parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None
    if not isinstance(data.get("jsonrpc"), str) or not isinstance(data.get("method"), str):
        return None
    return data


def write_response(response, stdout):
    resp_str = json.dumps(response, allow_nan=False)
    stdout.write(resp_str)
    stdout.write("\n")
    stdout.flush()
    logger.debug(f"Sent: {resp_str}")


def run_stdio_server(handler, stdin=None, stdout=None):
    """
    Reads JSON-RPC requests from stdin, one per line, and writes responses to stdout.
    The handler takes a request dict and returns a response dict, or None when nothing should be sent.
    Returns on end of input; I/O errors propagate to the caller.
    """
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout

    while True:
        line = stdin.readline()
        if not line:
            break  # EOF
        if not line.strip():
            continue

        line = line.rstrip("\r\n")
        logger.debug(f"Received: {line}")

        data = parse_request(line)
        if data is None:
            logger.debug("Dropping line that is not a JSON-RPC request")
            continue

        response = handler(data)
        if response is not None:
            write_response(response, stdout)

    logger.info("Exiting Hello World MCP Server.")
