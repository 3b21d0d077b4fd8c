from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field


# Hosting environment variable names
ENV_REPOSITORY = "GITHUB_REPOSITORY"
ENV_API_URL = "GITHUB_API_URL"
ENV_RESULTS_URL = "ACTIONS_RESULTS_URL"
ENV_RUNTIME_TOKEN = "ACTIONS_RUNTIME_TOKEN"
ENV_BACKEND = "STATE_BACKEND"
ENV_BUCKET = "STATE_BUCKET"
ENV_OBJECT_PREFIX = "STATE_OBJECT_PREFIX"

# Action input names (exposed by the runner as INPUT_<NAME>)
INPUT_REPO_TOKEN = "repo-token"
INPUT_CACHE_PREFIX = "cache-prefix"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def get_input(name: str) -> str:
    """Read an action input the way the runner passes it: `INPUT_<NAME>`, trimmed."""
    val = os.environ.get(f"INPUT_{name.replace(' ', '_').upper()}", "")
    return val.strip()


class StateStoreOptions(BaseModel):
    """
    Configuration for `StateCacheStorage` and the backend it talks to.

    Fields
    - cache_prefix: prepended to the cache key and scratch file name.
    - repo_token, repository, api_url: GitHub REST access for cache list/delete.
    - results_url, runtime_token: cache service used for upload/download.
    - backend: "github" (Actions cache) or "s3".
    - s3_bucket, s3_object_prefix: object location for the S3 backend.
    - scratch_root: parent of the scratch directory (defaults to the temp root).
    """

    cache_prefix: str = ""
    repo_token: Optional[str] = None
    repository: Optional[str] = None
    api_url: str = "https://api.github.com"
    results_url: Optional[str] = None
    runtime_token: Optional[str] = None
    backend: Literal["github", "s3"] = "github"
    s3_bucket: Optional[str] = None
    s3_object_prefix: str = Field(default="state-cache/")
    scratch_root: Optional[Path] = None

    @classmethod
    def from_env(cls, **overrides) -> "StateStoreOptions":
        values = {
            "cache_prefix": get_input(INPUT_CACHE_PREFIX),
            "repo_token": get_input(INPUT_REPO_TOKEN) or None,
            "repository": _getenv(ENV_REPOSITORY),
            "api_url": _getenv(ENV_API_URL, "https://api.github.com"),
            "results_url": _getenv(ENV_RESULTS_URL),
            "runtime_token": _getenv(ENV_RUNTIME_TOKEN),
            "backend": _getenv(ENV_BACKEND, "github"),
            "s3_bucket": _getenv(ENV_BUCKET),
            "s3_object_prefix": _getenv(ENV_OBJECT_PREFIX, "state-cache/"),
        }
        values.update(overrides)
        return cls(**values)
