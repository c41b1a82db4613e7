"""Remembering audio port connections and restoring them when ports appear."""

from __future__ import annotations

import abc
import enum
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

_logger = logging.getLogger(__name__)


class PortDirection(enum.Flag):
    """Direction flags of an audio port."""

    NONE = 0
    INPUT = 1
    OUTPUT = 2


class Patchbay(abc.ABC):
    """Access to the audio server's ports and connections."""

    @abc.abstractmethod
    def port_name(self, port_id: int) -> str | None:
        """Return the full name of the port with this id, or None if gone."""

    @abc.abstractmethod
    def port_direction(self, name: str) -> PortDirection | None:
        """Return the direction flags of a port, or None if it does not exist."""

    @abc.abstractmethod
    def ports(self) -> Iterable[str]:
        """Return the names of all existing ports."""

    @abc.abstractmethod
    def connections(self, name: str) -> Iterable[str]:
        """Return the names of the ports connected to ``name``."""

    @abc.abstractmethod
    def connect(self, source: str, destination: str) -> None:
        """Connect an output port to an input port."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the connection to the audio server."""


class _Kind(enum.Enum):
    PORT_CONNECT = enum.auto()
    GRAPH_REORDERED = enum.auto()
    PORT_REGISTRATION = enum.auto()


@dataclass(frozen=True)
class _Notification:
    kind: _Kind
    a: int = 0
    b: int = 0
    flag: bool = False


@dataclass(frozen=True)
class _ConnectionChange:
    a: int
    b: int
    connect: bool


class PortAutoConnect:
    """Tracks output-to-input connections and re-creates them automatically.

    Server events are queued by the ``on_port_connect``, ``on_graph_reordered``
    and ``on_port_registration`` methods, which may be called from any thread.
    They are processed by :meth:`on_slow_timer` once the queue has stopped
    growing between two calls.
    """

    def __init__(
        self,
        patchbay: Patchbay,
        on_changed: Callable[[], None],
        on_shutdown: Callable[[], None],
    ) -> None:
        self._patchbay: Patchbay | None = patchbay
        self._on_changed = on_changed
        self._shutdown_callback = on_shutdown
        self._enable_auto_connect = True
        self._enable_monitoring = True
        self._started = False

        self._lock = threading.Lock()
        self._notifications: list[_Notification] = []
        self._previous_count = 0

        self._pending_changes: list[_ConnectionChange] = []
        self._outputs: dict[str, set[str]] = {}
        self._inputs: dict[str, set[str]] = {}

    @property
    def output_connections(self) -> dict[str, set[str]]:
        """Saved connections, from each output port to its input ports."""
        return {port: set(peers) for port, peers in self._outputs.items()}

    @property
    def input_connections(self) -> dict[str, set[str]]:
        """Saved connections, from each input port to its output ports."""
        return {port: set(peers) for port, peers in self._inputs.items()}

    @property
    def enable_auto_connect(self) -> bool:
        return self._enable_auto_connect

    @enable_auto_connect.setter
    def enable_auto_connect(self, value: bool) -> None:
        changed = value != self._enable_auto_connect
        self._enable_auto_connect = value
        if changed and value and self._started:
            self._auto_connect_all_existing_ports()

    @property
    def enable_connect_monitoring(self) -> bool:
        return self._enable_monitoring

    @enable_connect_monitoring.setter
    def enable_connect_monitoring(self, value: bool) -> None:
        changed = value != self._enable_monitoring
        self._enable_monitoring = value
        if changed and value and self._started:
            self._save_all_port_connections()

    def start(self, output_connections: Mapping[str, Iterable[str]]) -> None:
        """Load saved connections, record current ones and connect existing ports."""
        if self._patchbay is None:
            return
        _logger.info("Starting port connection monitor")

        self._outputs = {out: set(ins) for out, ins in output_connections.items()}
        self._inputs = {}
        for out, ins in self._outputs.items():
            for inp in ins:
                self._inputs.setdefault(inp, set()).add(out)

        self._save_all_port_connections()
        self._auto_connect_all_existing_ports()
        self._started = True

    def stop(self) -> None:
        """Close the patchbay; further events are ignored."""
        if self._patchbay is not None:
            _logger.info("Stopping monitoring client")
            self._patchbay.close()
            self._patchbay = None
            self._started = False

    def on_slow_timer(self) -> None:
        """Process queued events once the queue has been stable for one tick."""
        with self._lock:
            if self._previous_count != len(self._notifications):
                self._previous_count = len(self._notifications)
                return
            if self._previous_count == 0:
                return
            pending, self._notifications = self._notifications, []

        _logger.info("Processing %d notifications", len(pending))
        for notification in pending:
            if notification.kind is _Kind.PORT_CONNECT:
                self._pending_changes.append(
                    _ConnectionChange(notification.a, notification.b, notification.flag)
                )
            elif notification.kind is _Kind.GRAPH_REORDERED:
                self._process_connection_changes()
            else:
                self._process_registration(notification.a, notification.flag)

    def on_port_connect(self, a: int, b: int, connect: bool) -> None:
        """Queue a connection or disconnection between two port ids."""
        self._queue(_Notification(_Kind.PORT_CONNECT, a, b, bool(connect)))

    def on_graph_reordered(self) -> None:
        """Queue a graph reorder, which commits preceding connection changes."""
        self._queue(_Notification(_Kind.GRAPH_REORDERED))

    def on_port_registration(self, port: int, registered: bool) -> None:
        """Queue the registration or removal of a port id."""
        self._queue(_Notification(_Kind.PORT_REGISTRATION, port, 0, bool(registered)))

    def on_shutdown(self, code: int, reason: str) -> None:
        """Handle the audio server shutting down by asking the host to stop."""
        _logger.info("server shutting down: %s (code %s)", reason, code)
        self._shutdown_callback()

    def _queue(self, notification: _Notification) -> None:
        with self._lock:
            self._notifications.append(notification)

    def _process_connection_changes(self) -> None:
        changes, self._pending_changes = self._pending_changes, []
        if self._patchbay is None:
            return
        _logger.info("Processing %d port connection changes", len(changes))
        for change in changes:
            a_name = self._patchbay.port_name(change.a)
            b_name = self._patchbay.port_name(change.b)
            if a_name is None or b_name is None:
                _logger.debug("Port disconnected because its client went away")
                continue
            self._save_port_connection(a_name, b_name, change.connect)

    def _process_registration(self, port: int, registered: bool) -> None:
        if not registered or self._patchbay is None:
            return
        name = self._patchbay.port_name(port)
        if name is None:
            _logger.debug("Port %d registered but can't open it", port)
            return
        self._auto_connect_port(name)

    def _save_all_port_connections(self) -> None:
        if not self._enable_monitoring or self._patchbay is None:
            return
        _logger.info("Saving already made connections")
        for port in list(self._patchbay.ports()):
            direction = self._patchbay.port_direction(port)
            if direction is None or PortDirection.OUTPUT not in direction:
                continue
            for peer in list(self._patchbay.connections(port)):
                self._save_port_connection(port, peer, True)

    def _auto_connect_all_existing_ports(self) -> None:
        if self._patchbay is None:
            return
        for port in list(self._patchbay.ports()):
            self._auto_connect_port(port)

    def _save_port_connection(self, a_name: str, b_name: str, connect: bool) -> None:
        if not self._enable_monitoring or self._patchbay is None:
            return
        a_dir = self._patchbay.port_direction(a_name)
        b_dir = self._patchbay.port_direction(b_name)
        if a_dir is None or b_dir is None:
            _logger.debug("Port disconnected because its client went away")
            return
        if PortDirection.OUTPUT not in a_dir or PortDirection.INPUT not in b_dir:
            _logger.debug("Not an output to input connection between %s and %s", a_name, b_name)
            return
        output, inp = a_name, b_name

        if connect:
            peers = self._outputs.setdefault(output, set())
            if inp not in peers:
                peers.add(inp)
                self._on_changed()
            self._inputs.setdefault(inp, set()).add(output)
        else:
            if output in self._outputs:
                self._outputs[output].discard(inp)
                if not self._outputs[output]:
                    del self._outputs[output]
                self._on_changed()
            if inp in self._inputs:
                self._inputs[inp].discard(output)
                if not self._inputs[inp]:
                    del self._inputs[inp]

    def _auto_connect_port(self, name: str) -> None:
        if not self._enable_auto_connect:
            _logger.debug("Autoconnection disabled, not connecting %s", name)
            return
        if self._patchbay is None:
            return
        direction = self._patchbay.port_direction(name)
        if direction is None:
            _logger.debug("Port %s can't be opened", name)
            return
        if PortDirection.OUTPUT in direction:
            is_input = False
            peers = self._outputs.get(name)
        elif PortDirection.INPUT in direction:
            is_input = True
            peers = self._inputs.get(name)
        else:
            _logger.debug("Port %s not an input or output", name)
            return
        if not peers:
            return
        for peer in sorted(peers):
            if is_input:
                self._patchbay.connect(peer, name)
            else:
                self._patchbay.connect(name, peer)