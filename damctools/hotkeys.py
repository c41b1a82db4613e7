"""Global hotkeys that trigger OSC addresses."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hotkey:
    """A key, identified by its virtual key code, with its modifier mask."""

    virtual_key_code: int
    modifiers: int


@dataclass
class _HotkeyData:
    id: int
    addresses: set[str] = field(default_factory=set)


class HotkeyRegistry:
    """Maps hotkeys to OSC addresses and triggers them when a hotkey is pressed.

    ``register(hotkey_id, hotkey)`` and ``unregister(hotkey_id)`` install and
    remove a hotkey with the system.  :meth:`on_hotkey` may be called from the
    thread that receives key presses; the addresses it queues are triggered
    with ``trigger_address`` by :meth:`dispatch_pending`.
    """

    def __init__(
        self,
        trigger_address: Callable[[str], None],
        register: Callable[[int, Hotkey], None],
        unregister: Callable[[int], None],
    ) -> None:
        self._trigger_address = trigger_address
        self._register = register
        self._unregister = unregister
        self._registered: dict[Hotkey, _HotkeyData] = {}
        self._ids = itertools.count()
        self._lock = threading.Lock()
        self._pending: list[str] = []

    @property
    def hotkeys(self) -> dict[Hotkey, set[str]]:
        """Registered hotkeys and the addresses each one triggers."""
        return {hotkey: set(data.addresses) for hotkey, data in self._registered.items()}

    def add(self, hotkey: Hotkey, address: str) -> bool:
        """Make ``hotkey`` trigger ``address``; False if it already did."""
        data = self._registered.get(hotkey)
        if data is None:
            hotkey_id = next(self._ids) & 0xFFFF
            _logger.info(
                "Added new hotkey %d:%d with id %d",
                hotkey.modifiers,
                hotkey.virtual_key_code,
                hotkey_id,
            )
            self._register(hotkey_id, hotkey)
            data = self._registered[hotkey] = _HotkeyData(hotkey_id)

        if address in data.addresses:
            _logger.info(
                "Hotkey %d:%d already has target %s",
                hotkey.modifiers,
                hotkey.virtual_key_code,
                address,
            )
            return False
        data.addresses.add(address)
        _logger.info(
            "Hotkey %d:%d added with OSC target %s", hotkey.modifiers, hotkey.virtual_key_code, address
        )
        return True

    def remove(self, hotkey: Hotkey, address: str) -> bool:
        """Stop ``hotkey`` from triggering ``address``; False if it did not."""
        data = self._registered.get(hotkey)
        if data is None:
            _logger.warning(
                "Hotkey %d:%d not found, cannot remove it", hotkey.modifiers, hotkey.virtual_key_code
            )
            return False

        removed = address in data.addresses
        if removed:
            data.addresses.discard(address)
            _logger.info(
                "Hotkey %d:%d removed target %s", hotkey.modifiers, hotkey.virtual_key_code, address
            )
        else:
            _logger.warning(
                "Hotkey %d:%d is not associated with %s",
                hotkey.modifiers,
                hotkey.virtual_key_code,
                address,
            )

        if not data.addresses:
            _logger.debug(
                "No more associated hotkey with %d:%d, removing id %d",
                hotkey.modifiers,
                hotkey.virtual_key_code,
                data.id,
            )
            self._unregister(data.id)
            del self._registered[hotkey]
        return removed

    def add_from_arguments(self, args: Sequence[object]) -> bool:
        """Add from OSC arguments ``(virtual_key_code, modifiers, address)``."""
        hotkey, address = _parse_arguments(args)
        return self.add(hotkey, address)

    def remove_from_arguments(self, args: Sequence[object]) -> bool:
        """Remove from OSC arguments ``(virtual_key_code, modifiers, address)``."""
        hotkey, address = _parse_arguments(args)
        return self.remove(hotkey, address)

    def on_hotkey(self, hotkey: Hotkey) -> int:
        """Queue the addresses of a pressed hotkey; return how many were queued."""
        _logger.info(
            "Received hotkey for modifier %d and key virtual code %d",
            hotkey.modifiers,
            hotkey.virtual_key_code,
        )
        data = self._registered.get(hotkey)
        if data is None:
            _logger.warning(
                "Hotkey %d:%d not found, ignoring", hotkey.modifiers, hotkey.virtual_key_code
            )
            return 0
        addresses = sorted(data.addresses)
        with self._lock:
            self._pending.extend(addresses)
        return len(addresses)

    def dispatch_pending(self) -> list[str]:
        """Trigger every queued address in order and return them."""
        with self._lock:
            pending, self._pending = self._pending, []
        for address in pending:
            _logger.info("Executing OSC address %s", address)
            self._trigger_address(address)
        return pending


def _parse_arguments(args: Sequence[object]) -> tuple[Hotkey, str]:
    if len(args) != 3:
        raise TypeError(f"expected 3 arguments (int, int, str), got {len(args)}")
    key_code, modifiers, address = args
    for value in (key_code, modifiers):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"expected an integer argument, got {value!r}")
    if not isinstance(address, str):
        raise TypeError(f"expected a string address, got {address!r}")
    return Hotkey(key_code, modifiers), address