"""
Cloud sync -- turn saves travelling to and from the remote store.

The relay picks one backend at startup. The service on top of it
knows canonical paths, overwrite semantics and download fallbacks.
"""

from .backends import DropboxBackend, LocalBackend, StoreBackend, create_backend
from .service import CloudSyncService, remote_path_for, remote_turn_path

__all__ = [
    "CloudSyncService",
    "DropboxBackend",
    "LocalBackend",
    "StoreBackend",
    "create_backend",
    "remote_path_for",
    "remote_turn_path",
]
