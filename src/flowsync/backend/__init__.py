"""
flowsync backend - graph store, sync coordinator and the HTTP/WebSocket surface.
"""

from .graph_store import GraphStore, GraphChange
from .sync import SyncCoordinator, SyncState, AsyncioScheduler

__all__ = [
    "GraphStore",
    "GraphChange",
    "SyncCoordinator",
    "SyncState",
    "AsyncioScheduler",
]
