"""Services: sync engine, workspace orchestration, locking."""

from forksync.services.engine import (
    RemoteEndpoint,
    SyncEngine,
    SyncOutcome,
    SyncState,
    SyncStatus,
    SyncStep,
)
from forksync.services.locks import LockError, RepoLock, acquire_lock
from forksync.services.workspace_sync import SyncReport, WorkspaceSyncService

__all__ = [
    "LockError",
    "RemoteEndpoint",
    "RepoLock",
    "SyncEngine",
    "SyncOutcome",
    "SyncReport",
    "SyncState",
    "SyncStatus",
    "SyncStep",
    "WorkspaceSyncService",
    "acquire_lock",
]
