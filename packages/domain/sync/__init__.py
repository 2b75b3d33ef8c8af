"""
Sync Module - mailbox to ledger orchestration
"""
from packages.domain.sync.progress import ProgressCallback, ProgressRecorder
from packages.domain.sync.sync_engine import SyncEngine, build_search_query, ticket_id_for

__all__ = [
    "ProgressCallback",
    "ProgressRecorder",
    "SyncEngine",
    "build_search_query",
    "ticket_id_for",
]
