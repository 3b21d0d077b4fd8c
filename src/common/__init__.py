"""
Common utilities for actions-state-cache.

Modules:
- github: GitHub REST client for the repository Actions cache endpoints
- actions_cache: Actions cache service client (reserve, upload, download)
- archive: gzip tar packing of cached paths
- logs: logger setup with workflow-command output
"""

__all__ = [
    "actions_cache",
    "archive",
    "github",
    "logs",
]
