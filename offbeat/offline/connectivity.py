"""Connectivity state with transition notifications."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor:
    """Holds the current online/offline state.

    The environment reports signals through `set_online`; subscribers are
    notified only when the state actually changes. Nothing here polls.
    """

    def __init__(self, is_online: bool = True) -> None:
        self._is_online = is_online
        self._listeners: list[ConnectivityListener] = []

    @property
    def is_online(self) -> bool:
        return self._is_online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, is_online: bool) -> None:
        """Report a connectivity signal."""
        if is_online == self._is_online:
            return
        self._is_online = is_online
        logger.info(f"Connectivity changed: {'online' if is_online else 'offline'}")
        for listener in list(self._listeners):
            listener(is_online)
