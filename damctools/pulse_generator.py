"""Test pulse playback and closed-loop delay and clock-drift control of one output."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

_logger = logging.getLogger(__name__)

_PULSE_GAIN = 10 ** (-20 / 20)
_BIG_ERROR_THRESHOLD = 96
_STABILITY_TOLERANCE = 15
_BIG_ERROR_HISTORY = 3


class DelayController(Protocol):
    """What a pulse generator needs to correct an output's timing."""

    def adjust_delay(self, output_instance: int, delay: int) -> None: ...

    def set_clock_drift(self, output_instance: int, clock_drift: float) -> None: ...


class PulseGenerator:
    """Plays a pulse after a fixed delay and corrects the output it measures.

    Large errors (more than 96 samples) are corrected by adjusting the
    output's delay once they have been stable for several measurements;
    small errors are corrected by steering the output's clock drift.
    """

    def __init__(
        self,
        pulse: Sequence[float],
        delay: int,
        controller: DelayController,
        output_instance: int,
        sample_rate: float,
    ) -> None:
        self.pulse = [sample * _PULSE_GAIN for sample in pulse]
        self.delay = int(delay)
        self.output_instance = output_instance
        self.sample_rate = float(sample_rate)
        self._controller = controller
        self._position = -self.delay

        self._smoothed_error = 0.0
        self._previous_error = 0.0
        self._previous_time = 0
        self._integral_error = 1.0
        self._sample_rate_control = 1.0
        self._big_errors: list[int] = []

        _logger.info("Pulse generator with delay %f ms", self.delay / self.sample_rate * 1000)

    @property
    def sample_rate_control(self) -> float:
        """Current clock ratio applied to the output (1.0 means no drift)."""
        return self._sample_rate_control

    def process(self, nframes: int) -> list[float]:
        """Return the next ``nframes`` output samples."""
        out: list[float] = []
        if self._position < 0:
            lead = min(nframes, -self._position)
            out.extend([0.0] * lead)
            self._position += lead

        chunk = self.pulse[self._position:self._position + nframes - len(out)]
        out.extend(chunk)
        self._position += len(chunk)
        out.extend([0.0] * (nframes - len(out)))
        return out

    def start_new_pulse(self) -> None:
        """Restart playback: silence for ``delay`` samples, then the pulse."""
        self._position = -self.delay

    def compute_delay_control(self, delay_error: int, timestamp: int) -> None:
        """Correct the output from a measured delay error, in samples."""
        samples_per_ms = self.sample_rate / 1000
        if abs(delay_error) > _BIG_ERROR_THRESHOLD:
            self._handle_big_error(delay_error, samples_per_ms)
            return

        time_diff = (timestamp - self._previous_time) / self.sample_rate
        self._smoothed_error = 0.95 * self._smoothed_error + 0.05 * delay_error
        computed_drift = 1.0

        if self._previous_time > 0 and time_diff != 0:
            error_diff = (delay_error - self._previous_error) / self.sample_rate
            computed_drift = self._sample_rate_control / (error_diff / time_diff + 1)
            self._integral_error = self._integral_error * 0.98 + 0.02 * computed_drift
            self._sample_rate_control = self._integral_error

        self._previous_time = timestamp
        self._previous_error = float(delay_error)

        # Offset the integrated drift to compensate the remaining static delay.
        if time_diff != 0:
            self._sample_rate_control *= 1 - self._smoothed_error / self.sample_rate / time_diff / 10

        self._controller.set_clock_drift(self.output_instance, self._sample_rate_control - 1.0)

        _logger.info(
            "Delay error: %.3fms (%d), smooth: %fms (%.3f), drift: %.3f, integral: %.6f, instance: %d",
            delay_error / samples_per_ms,
            delay_error,
            self._smoothed_error / samples_per_ms,
            self._smoothed_error,
            (computed_drift - 1) * 1000000,
            self._integral_error,
            self.output_instance,
        )
        self._big_errors.clear()

    def _handle_big_error(self, delay_error: int, samples_per_ms: float) -> None:
        unstable_by = next(
            (
                abs(previous - delay_error)
                for previous in self._big_errors
                if abs(previous - delay_error) >= _STABILITY_TOLERANCE
            ),
            None,
        )
        stable_history = False
        if unstable_by is not None:
            self._big_errors.clear()
        elif len(self._big_errors) < _BIG_ERROR_HISTORY:
            self._big_errors.append(delay_error)
        else:
            stable_history = True

        _logger.info(
            "Delay error: %.3fms (%d), smooth: %fms (%.3f), drift: %.3f, reset: %d, error: %d",
            delay_error / samples_per_ms,
            delay_error,
            self._smoothed_error / samples_per_ms,
            self._smoothed_error,
            self._sample_rate_control,
            unstable_by is not None,
            unstable_by or 0,
        )

        if stable_history:
            _logger.info(
                "Too big delay on instance %d, adjusting %d", self.output_instance, -delay_error
            )
            self._controller.adjust_delay(self.output_instance, -delay_error)
            self._big_errors.clear()
            self._smoothed_error = 0.0
            self._previous_error = 0.0
            self._previous_time = 0
            self._sample_rate_control = self._integral_error