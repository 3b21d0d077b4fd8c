"""
Cache-backed persistence of a run's progress between scheduled executions.

`StateCacheStorage` keeps one serialized string per cache prefix in a remote
cache (GitHub Actions cache or S3); `ProcessedState` is the cursor whose
serialized form is stored there.
"""

from .backends import CacheBackend, CacheBackendError, GitHubCacheBackend, S3CacheBackend, build_backend
from .cache_storage import StateCacheStorage, StateStorage
from .models import ProcessedState
from .options import StateStoreOptions

__all__ = [
    "CacheBackend",
    "CacheBackendError",
    "GitHubCacheBackend",
    "ProcessedState",
    "S3CacheBackend",
    "StateCacheStorage",
    "StateStorage",
    "StateStoreOptions",
    "build_backend",
]
