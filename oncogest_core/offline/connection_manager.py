# =============================================================================
# oncogest_core/offline/connection_manager.py
# Connection Status Detection for the Remote Data Service
# =============================================================================
"""
ConnectionManager - Decides whether the Supabase backend is usable.

The gateway asks once per session; the answer is not re-checked per call so
the session keeps one predictable mode.
"""

from __future__ import annotations
import socket
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlparse

from oncogest_core.config import Settings
from oncogest_core.logging import get_logger

logger = get_logger(__name__)


class ConnectionStatus(Enum):
    """Connection status states."""
    ONLINE = "online"               # Configured and reachable
    DEGRADED = "degraded"           # Configured but host unreachable
    UNCONFIGURED = "unconfigured"   # No URL/key available
    OFFLINE = "offline"             # Forced offline by configuration
    UNKNOWN = "unknown"             # Initial state


@dataclass
class ConnectionState:
    """Current connection state with metadata."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    host: Optional[str] = None
    last_check: Optional[datetime] = None
    error_message: Optional[str] = None


def _tcp_connect(host: str, port: int, timeout: float) -> bool:
    with socket.create_connection((host, port), timeout=timeout):
        return True


class ConnectionManager:
    """
    One-shot reachability check for the configured Supabase project.

    Usage:
        manager = ConnectionManager(settings)
        if manager.check_connection().status is ConnectionStatus.ONLINE:
            # Use the remote store
        else:
            # Use the local fallback store
    """

    CONNECTION_TIMEOUT = 5  # Seconds

    def __init__(
        self,
        settings: Settings,
        connect: Callable[[str, int, float], bool] = _tcp_connect,
    ):
        self.settings = settings
        self._connect = connect
        self._state = ConnectionState()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state.status == ConnectionStatus.ONLINE

    def check_connection(self) -> ConnectionState:
        """
        Perform a connection check and update state.

        Returns:
            Updated ConnectionState
        """
        self._state.last_check = datetime.now()
        self._state.error_message = None

        if self.settings.force_offline:
            self._state.status = ConnectionStatus.OFFLINE
        elif not self.settings.supabase_configured:
            self._state.status = ConnectionStatus.UNCONFIGURED
        elif self._check_supabase():
            self._state.status = ConnectionStatus.ONLINE
        else:
            self._state.status = ConnectionStatus.DEGRADED

        logger.info(f"Connection status: {self._state.status.value}")
        return self._state

    def _check_supabase(self) -> bool:
        """
        Check Supabase connectivity with a TCP connect to its host.

        Returns:
            True if the host accepts connections
        """
        parsed = urlparse(self.settings.supabase_url)
        host = parsed.hostname
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        self._state.host = host

        if not host:
            self._state.error_message = "Supabase URL has no host"
            return False

        try:
            return bool(self._connect(host, port, self.CONNECTION_TIMEOUT))
        except OSError as e:
            self._state.error_message = str(e)
            logger.warning(f"Supabase host {host}:{port} unreachable: {e}")
            return False

    def get_status_display(self) -> dict:
        """Get status information for UI display."""
        return {
            "status": self._state.status.value,
            "is_online": self.is_online,
            "host": self._state.host,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "error": self._state.error_message,
        }
