"""
Online/offline tracking.

The engine asks ``is_online()`` before every network attempt. The state
is flipped explicitly (``mark_online`` / ``mark_offline``) or by running
an async probe, and listeners hear about every transition.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]
ConnectivityListener = Callable[[bool], None]


class Connectivity:
    """Current reachability of the remote store."""

    def __init__(self, online: bool = True, probe: Probe | None = None) -> None:
        self._online = online
        self._probe = probe
        self._listeners: list[ConnectivityListener] = []

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a transition listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                logger.exception("Connectivity listener failed")

    def mark_online(self) -> None:
        self._set(True)

    def mark_offline(self) -> None:
        self._set(False)

    async def refresh(self) -> bool:
        """Run the probe (if any) and update the state. Returns the new state."""
        if self._probe is not None:
            self._set(await self._probe())
        return self._online

    async def poll(self, interval: float) -> None:
        """Re-run the probe every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except Exception:
                logger.exception("Connectivity probe failed")
