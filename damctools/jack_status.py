"""Decoding of JACK client status bit masks."""

from __future__ import annotations

import enum
import logging

_logger = logging.getLogger(__name__)


class JackStatus(enum.IntFlag):
    """Status bits reported by the JACK server when opening a client."""

    JackFailure = 0x01
    JackInvalidOption = 0x02
    JackNameNotUnique = 0x04
    JackServerStarted = 0x08
    JackServerFailed = 0x10
    JackServerError = 0x20
    JackNoSuchClient = 0x40
    JackLoadFailure = 0x80
    JackInitFailure = 0x100
    JackShmFailure = 0x200
    JackVersionError = 0x400
    JackBackendError = 0x800
    JackClientZombie = 0x1000


_DESCRIPTIONS = {
    JackStatus.JackFailure: "Overall operation failed.",
    JackStatus.JackInvalidOption: "The operation contained an invalid or unsupported option.",
    JackStatus.JackNameNotUnique: "The desired client name was not unique.",
    JackStatus.JackServerStarted: "The JACK server was started as a result of this operation.",
    JackStatus.JackServerFailed: "Unable to connect to the JACK server.",
    JackStatus.JackServerError: "Communication error with the JACK server.",
    JackStatus.JackNoSuchClient: "Requested client does not exist.",
    JackStatus.JackLoadFailure: "Unable to load internal client",
    JackStatus.JackInitFailure: "Unable to initialize client",
    JackStatus.JackShmFailure: "Unable to access shared memory",
    JackStatus.JackVersionError: "Client's protocol version does not match",
    JackStatus.JackBackendError: "Backend error",
    JackStatus.JackClientZombie: "Client zombified failure",
}


def describe_status(status: int) -> list[str]:
    """Return one line per known bit set in ``status``, in bit order."""
    return [
        f"{flag.name} ({flag.value}): {_DESCRIPTIONS[flag]}"
        for flag in JackStatus
        if int(status) & flag.value
    ]


def log_jack_status(level: int, status: int) -> None:
    """Log every known bit set in ``status`` at the given logging level."""
    for line in describe_status(status):
        _logger.log(level, " - %s", line)