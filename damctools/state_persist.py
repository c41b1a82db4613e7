"""Saving and restoring the OSC state tree and port connections as JSON."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

_logger = logging.getLogger(__name__)

_PORT_CONNECTIONS = "portConnections"


class OscStateRoot(Protocol):
    """The OSC tree whose state is persisted."""

    def get_as_string(self) -> str: ...

    def load_node_config(self, values: dict[str, list[Any]]) -> None: ...


def flatten_config(data: Any) -> dict[str, list[Any]]:
    """Turn a JSON state tree into OSC addresses and their argument lists.

    Objects become address components, arrays become argument lists and
    scalars become single arguments.  The result is sorted by address.
    """
    values: dict[str, list[Any]] = {}
    _flatten(values, "", data)
    return dict(sorted(values.items()))


def _flatten(values: dict[str, list[Any]], address: str, node: Any) -> None:
    if isinstance(node, dict):
        for key, child in node.items():
            _flatten(values, f"{address}/{key}", child)
    elif isinstance(node, list):
        values.setdefault(address, [_argument(address, item) for item in node])
    else:
        values.setdefault(address, [_argument(address, node)])


def _argument(address: str, value: Any) -> Any:
    if isinstance(value, (bool, int, float, str)):
        return value
    if value is None:
        kind = "null"
    elif isinstance(value, dict):
        kind = "object"
    elif isinstance(value, list):
        kind = "array"
    else:
        kind = type(value).__name__
    raise ValueError(f"json array {address} contains unsupported type {kind}")


def _parse_connections(config: Any) -> dict[str, set[str]]:
    if not isinstance(config, dict):
        raise TypeError("config root is not an object")
    raw = config.get(_PORT_CONNECTIONS, {})
    if not isinstance(raw, dict):
        raise TypeError(f"{_PORT_CONNECTIONS} is not an object")
    connections: dict[str, set[str]] = {}
    for output, inputs in raw.items():
        if not isinstance(inputs, list) or not all(isinstance(i, str) for i in inputs):
            raise TypeError(f"{_PORT_CONNECTIONS}/{output} is not an array of strings")
        connections[output] = set(inputs)
    return connections


def _program_dir() -> str:
    program = sys.argv[0] if sys.argv else ""
    return os.path.dirname(os.path.abspath(program)) if program else ""


class StatePersist:
    """Reads and writes the state file, by default next to the running program."""

    def __init__(self, root: OscStateRoot, file_name: str, base_dir: str | os.PathLike | None = None) -> None:
        self._root = root
        directory = _program_dir() if base_dir is None else os.fspath(base_dir)
        self.save_file_name = os.path.join(directory, file_name) if directory else file_name

    def load_state(self) -> dict[str, set[str]]:
        """Load the state file into the OSC tree and return the saved port connections.

        A missing or invalid file is logged and leaves the tree untouched;
        no connections are returned then.
        """
        _logger.info("Loading config file %s", self.save_file_name)
        try:
            with open(self.save_file_name, "rb") as stream:
                raw = stream.read()
        except OSError as exc:
            _logger.info("Can't open config file %s, skipping config load (%s)", self.save_file_name, exc)
            return {}

        try:
            config = json.loads(raw)
            values = flatten_config(config)
            connections = _parse_connections(config)
        except (ValueError, TypeError) as exc:
            _logger.error("Exception while parsing config: %s", exc)
            _logger.error("json: %s", raw.decode("utf-8", "replace"))
            return {}

        _logger.debug("Updating OSC variables")
        try:
            self._root.load_node_config(values)
        except Exception:
            _logger.exception("Exception while applying config")
        else:
            _logger.debug("Loaded config")
        return connections

    def save_state(self, output_connections: Mapping[str, Iterable[str]]) -> bool:
        """Write the OSC tree and ``output_connections`` to the state file.

        Returns False, after logging, if the state could not be written.
        """
        _logger.info("Saving config")
        state = ""
        try:
            state = self._root.get_as_string()
            config = json.loads(state)
            if config is None:
                config = {}
            if not isinstance(config, dict):
                raise TypeError("OSC state is not an object")
            config[_PORT_CONNECTIONS] = {
                output: sorted(inputs) for output, inputs in output_connections.items()
            }
            text = json.dumps(config, indent=4, sort_keys=True, ensure_ascii=False)
        except (ValueError, TypeError) as exc:
            _logger.error("Exception while saving config: %s", exc)
            _logger.error("json: %s", state)
            return False

        try:
            with open(self.save_file_name, "w", encoding="utf-8") as stream:
                stream.write(text)
        except OSError as exc:
            _logger.error("Can't open config file for saving %s, error %s", self.save_file_name, exc)
            return False

        _logger.debug("Saved config to %s", self.save_file_name)
        return True