"""Services module for storage, search mirroring and detached work."""

from bugscout.services.background import BackgroundTasks
from bugscout.services.issue_store import IssueStore, SupabaseIssueStore
from bugscout.services.persistence import PersistenceSink
from bugscout.services.supabase_client import SupabaseClient, get_supabase_client
from bugscout.services.vectorize import CloudflareVectorizeClient, IssueIndexMirror, get_issue_index_mirror

__all__ = [
    "BackgroundTasks",
    "CloudflareVectorizeClient",
    "IssueIndexMirror",
    "IssueStore",
    "PersistenceSink",
    "SupabaseClient",
    "SupabaseIssueStore",
    "get_issue_index_mirror",
    "get_supabase_client",
]
