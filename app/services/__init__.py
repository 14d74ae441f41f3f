"""
                        Services Module

Contains the data-access/fallback layer and its collaborators.
The remote service has Mock (in-memory) and Supabase (hosted) implementations.

Services:
    - remote: Hosted database, storage and change feed
    - local_store: File-backed local mirror
    - data_access: Remote-preferring CRUD with local fallback
    - images, connection: Image references and connection probe
    - cart, admin_session: Local-only customer cart and admin flag
    - context: Repository context owning all of the above
"""

from app.services.context import RepositoryContext
from app.services.data_access import DataAccessLayer, SyncPolicy, WriteOutcome, WriteResult
from app.services.local_store import LocalStore, LocalStoreError

__all__ = [
    "RepositoryContext",
    "DataAccessLayer",
    "SyncPolicy",
    "WriteOutcome",
    "WriteResult",
    "LocalStore",
    "LocalStoreError",
]
