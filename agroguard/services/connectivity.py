"""Network reachability signal shared by the orchestrator and sync coordinator."""

import logging
import threading
from functools import lru_cache

from agroguard.config import get_settings

logger = logging.getLogger(__name__)


class NetworkStatus:
    """Boolean "is the network reachable" flag, set by the client."""

    def __init__(self, online: bool = True):
        self._online = online
        self._lock = threading.Lock()

    def is_online(self) -> bool:
        with self._lock:
            return self._online

    def set_online(self, online: bool) -> bool:
        """Update the flag; returns True when this call brought the network back."""
        with self._lock:
            restored = online and not self._online
            if online != self._online:
                logger.info("Network status changed: %s", "online" if online else "offline")
            self._online = online
        return restored


@lru_cache
def get_network_status() -> NetworkStatus:
    return NetworkStatus(online=not get_settings().offline_mode)
