"""Delay and clock-drift control of a running audio server's output strips."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

_logger = logging.getLogger(__name__)

SendFunction = Callable[[str, Sequence[object]], None]


class ServerControl:
    """Keeps track of per-output delays and sends them as OSC messages.

    ``send`` is called with an OSC address and its argument list for every
    message to deliver to the server.  Delays are accumulated per output
    instance with :meth:`adjust_delay` and pushed with :meth:`update_delays`.
    The base output instance absorbs any negative delay so that no strip is
    ever given a negative value.
    """

    def __init__(self, send: SendFunction, base_output_instance: int) -> None:
        self._send = send
        self.base_output_instance = base_output_instance
        self._assigned: dict[int, int] = {}
        self._configured: dict[int, int] = {}

    @property
    def assigned_delays(self) -> dict[int, int]:
        """Relative delays requested per output instance, in samples."""
        return dict(self._assigned)

    @property
    def configured_delays(self) -> dict[int, int]:
        """Delays last sent to the server per output instance, in samples."""
        return dict(self._configured)

    def adjust_delay(self, output_instance: int, delay: int) -> None:
        """Add ``delay`` samples to the delay requested for ``output_instance``."""
        self._assigned[output_instance] = self._assigned.get(output_instance, 0) + delay

    def set_clock_drift(self, output_instance: int, clock_drift: float) -> None:
        """Send a clock drift correction for ``output_instance``."""
        self._send(f"/strip/{output_instance}/device/clockDrift", [float(clock_drift)])

    def update_delays(self) -> None:
        """Send every delay that changed since the last update."""
        base_delay = 0
        if self._assigned:
            lowest = min(self._assigned.values())
            if lowest < 0:
                base_delay = -lowest

        self._set_raw_delay(self.base_output_instance, base_delay)
        for instance, delay in self._assigned.items():
            self._set_raw_delay(instance, delay + base_delay)

    def _set_raw_delay(self, output_instance: int, delay: int) -> None:
        if self._configured.get(output_instance) == delay:
            return
        if delay < 0:
            _logger.warning("Attempt to set delay %d to %d", delay, output_instance)
            return
        self._configured[output_instance] = delay
        _logger.info("Setting delay of %d to %d", output_instance, delay)
        self._send(f"/strip/{output_instance}/filterChain/delay", [delay])