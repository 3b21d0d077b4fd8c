from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from common.actions_cache import ActionsCacheClient, ActionsCacheError
from common.archive import ArchiveError, create_archive, extract_archive
from common.github import GitHubApiError, GitHubClient, GitHubError

from .options import StateStoreOptions


ARCHIVE_SUFFIX = ".tgz"
_S3_MISSING_CODES = ("NoSuchKey", "NotFound", "404")

log = logging.getLogger(__name__)


class CacheBackendError(Exception):
    """
    Backend failure. `status` carries the backend's error code when it
    reported one (HTTP status or S3 error code); None for bare transport
    failures.
    """

    def __init__(self, message: str, *, status: Optional[Union[int, str]] = None) -> None:
        super().__init__(message)
        self.status = status


class CacheBackend(Protocol):
    def list_keys(self, prefix: str) -> List[str]:
        """Keys of entries starting with `prefix`."""
        ...

    def delete(self, key: str) -> None:
        ...

    def save(self, paths: Sequence[str], key: str) -> None:
        ...

    def restore(self, paths: Sequence[str], key: str) -> Optional[str]:
        """Unpack the entry into `paths`; returns the matched key or None on a miss."""
        ...


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


class GitHubCacheBackend:
    """Actions cache: REST API for list/delete, cache service for upload/download."""

    def __init__(self, *, github: GitHubClient, cache: ActionsCacheClient) -> None:
        self._github = github
        self._cache = cache

    @classmethod
    def from_options(cls, options: StateStoreOptions) -> "GitHubCacheBackend":
        github = GitHubClient(
            _require(options.repo_token, "repo-token"),
            _require(options.repository, "GITHUB_REPOSITORY"),
            api_base=options.api_url,
        )
        cache = ActionsCacheClient(
            _require(options.results_url, "ACTIONS_RESULTS_URL"),
            _require(options.runtime_token, "ACTIONS_RUNTIME_TOKEN"),
        )
        return cls(github=github, cache=cache)

    def list_keys(self, prefix: str) -> List[str]:
        try:
            caches = self._github.list_caches(prefix)
        except GitHubApiError as e:
            raise CacheBackendError(str(e), status=e.status) from e
        except GitHubError as e:
            raise CacheBackendError(str(e)) from e
        return [str(c["key"]) for c in caches if c.get("key") is not None]

    def delete(self, key: str) -> None:
        log.debug('remove cache "%s"', key)
        try:
            self._github.delete_cache_by_key(key)
        except GitHubApiError as e:
            raise CacheBackendError(str(e), status=e.status) from e
        except GitHubError as e:
            raise CacheBackendError(str(e)) from e

    def save(self, paths: Sequence[str], key: str) -> None:
        try:
            self._cache.save_cache(paths, key)
        except (ActionsCacheError, ArchiveError) as e:
            raise CacheBackendError(str(e)) from e

    def restore(self, paths: Sequence[str], key: str) -> Optional[str]:
        try:
            return self._cache.restore_cache(paths, key)
        except (ActionsCacheError, ArchiveError) as e:
            raise CacheBackendError(str(e)) from e


class S3CacheBackend:
    """
    S3 objects as cache entries: `<object_prefix><key>.tgz` holds the gzip
    tar of the cached paths.
    """

    def __init__(
        self,
        *,
        bucket: str,
        object_prefix: str = "state-cache/",
        s3: Optional[object] = None,
        region_name: Optional[str] = None,
    ) -> None:
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._bucket = bucket
        self._prefix = object_prefix

    @classmethod
    def from_options(cls, options: StateStoreOptions) -> "S3CacheBackend":
        return cls(
            bucket=_require(options.s3_bucket, "STATE_BUCKET"),
            object_prefix=options.s3_object_prefix,
        )

    def _object_key(self, key: str) -> str:
        return f"{self._prefix}{key}{ARCHIVE_SUFFIX}"

    def list_keys(self, prefix: str) -> List[str]:
        keys: List[str] = []
        token: Optional[str] = None
        while True:
            kwargs = {"Bucket": self._bucket, "Prefix": f"{self._prefix}{prefix}"}
            if token:
                kwargs["ContinuationToken"] = token
            try:
                resp = self._s3.list_objects_v2(**kwargs)
            except ClientError as e:
                raise _translate(e) from e
            except BotoCoreError as e:
                raise CacheBackendError(str(e)) from e
            for obj in resp.get("Contents", []) or []:
                name = str(obj.get("Key", ""))
                if name.endswith(ARCHIVE_SUFFIX):
                    keys.append(name[len(self._prefix) : -len(ARCHIVE_SUFFIX)])
            if not resp.get("IsTruncated"):
                return keys
            token = resp.get("NextContinuationToken")

    def delete(self, key: str) -> None:
        obj = self._object_key(key)
        log.debug('remove cache "%s"', key)
        # S3 deletes are idempotent; probe first so a missing entry is reported
        try:
            self._s3.head_object(Bucket=self._bucket, Key=obj)
            self._s3.delete_object(Bucket=self._bucket, Key=obj)
        except ClientError as e:
            raise _translate(e) from e
        except BotoCoreError as e:
            raise CacheBackendError(str(e)) from e

    def save(self, paths: Sequence[str], key: str) -> None:
        try:
            body = create_archive(paths)
        except ArchiveError as e:
            raise CacheBackendError(str(e)) from e
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=self._object_key(key),
                Body=body,
                ContentType="application/gzip",
            )
        except ClientError as e:
            raise _translate(e) from e
        except BotoCoreError as e:
            raise CacheBackendError(str(e)) from e

    def restore(self, paths: Sequence[str], key: str) -> Optional[str]:
        try:
            resp = self._s3.get_object(Bucket=self._bucket, Key=self._object_key(key))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in _S3_MISSING_CODES:
                return None
            raise _translate(e) from e
        except BotoCoreError as e:
            raise CacheBackendError(str(e)) from e
        try:
            extract_archive(resp["Body"].read(), paths)
        except (BotoCoreError, ArchiveError) as e:
            raise CacheBackendError(str(e)) from e
        return key


def _translate(e: ClientError) -> CacheBackendError:
    err = e.response.get("Error", {})
    code = err.get("Code")
    return CacheBackendError(err.get("Message") or str(e), status=code)


def build_backend(options: StateStoreOptions) -> CacheBackend:
    if options.backend == "s3":
        return S3CacheBackend.from_options(options)
    return GitHubCacheBackend.from_options(options)
