# =============================================================================
# oncogest_core/offline/__init__.py
# Local fallback support for OncoGest
# =============================================================================
"""
Offline support: connectivity probing and local snapshot persistence.

Usage:
------
from oncogest_core.offline import ConnectionManager, SnapshotStore

state = ConnectionManager(settings).check_connection()
store = SnapshotStore(settings.local_db_path)
"""

from oncogest_core.offline.connection_manager import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
)

from oncogest_core.offline.snapshot_store import SnapshotStore

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "SnapshotStore",
]
