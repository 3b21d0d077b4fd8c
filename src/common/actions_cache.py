from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from .archive import create_archive, extract_archive


SERVICE_PATH = "twirp/github.actions.results.api.v1.CacheService"
COMPRESSION_METHOD = "gzip"
VERSION_SALT = "1.0"
MAX_KEY_LENGTH = 512

log = logging.getLogger(__name__)


class ActionsCacheError(RuntimeError):
    """The cache service rejected a request or returned an unexpected payload."""


def cache_version(paths: Sequence[str]) -> str:
    """Version hash binding an entry to the paths and compression it was saved with."""
    components = list(paths) + [COMPRESSION_METHOD, VERSION_SALT]
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()


def _check_key(key: str) -> None:
    if not key:
        raise ValueError("cache key is required")
    if len(key) > MAX_KEY_LENGTH:
        raise ValueError(f"Key Validation Error: {key} cannot be larger than {MAX_KEY_LENGTH} characters.")
    if "," in key:
        raise ValueError(f"Key Validation Error: {key} cannot contain commas.")


class ActionsCacheClient:
    """
    Client for the hosted Actions cache service.

    Saving reserves an entry (`CreateCacheEntry`), PUTs the gzip tar archive to
    the signed blob URL, then commits it with `FinalizeCacheEntryUpload`.
    Restoring asks `GetCacheEntryDownloadURL` for an exact key and unpacks the
    downloaded archive in place.
    """

    def __init__(
        self,
        results_url: str,
        runtime_token: str,
        *,
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not results_url:
            raise ValueError("results_url is required")
        if not runtime_token:
            raise ValueError("runtime_token is required")
        self._service_url = f"{results_url.rstrip('/')}/{SERVICE_PATH}"
        self._token = runtime_token
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ActionsCacheClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Public API ---------------
    def save_cache(self, paths: Sequence[str], key: str) -> int:
        """Archive `paths` and store them under `key`. Returns the entry id."""
        _check_key(key)
        version = cache_version(paths)
        archive = create_archive(paths)
        log.debug("Archive size for %s: %d bytes", key, len(archive))

        reserved = self._call("CreateCacheEntry", {"key": key, "version": version})
        upload_url = reserved.get("signed_upload_url")
        if not reserved.get("ok") or not upload_url:
            raise ActionsCacheError(
                f"Unable to reserve cache with key {key}, another job may be creating this cache."
            )

        resp = self._client.put(
            upload_url,
            content=archive,
            headers={"x-ms-blob-type": "BlockBlob", "Content-Type": "application/octet-stream"},
        )
        if resp.status_code not in (200, 201):
            raise ActionsCacheError(f"Cache upload failed with HTTP {resp.status_code}")

        finalized = self._call(
            "FinalizeCacheEntryUpload",
            {"key": key, "version": version, "size_bytes": str(len(archive))},
        )
        if not finalized.get("ok"):
            raise ActionsCacheError(f"Unable to finalize cache with key {key}")
        entry_id = int(finalized.get("entry_id") or 0)
        log.debug("Cache saved with key: %s (entry %d)", key, entry_id)
        return entry_id

    def restore_cache(self, paths: Sequence[str], key: str) -> Optional[str]:
        """Download the entry stored under exactly `key` into `paths`.

        Returns the matched key, or None on a cache miss.
        """
        _check_key(key)
        found = self._call(
            "GetCacheEntryDownloadURL",
            {"key": key, "restore_keys": [], "version": cache_version(paths)},
        )
        download_url = found.get("signed_download_url")
        if not found.get("ok") or not download_url:
            log.debug("Cache not found for key: %s", key)
            return None

        resp = self._client.get(download_url)
        if resp.status_code != 200:
            raise ActionsCacheError(f"Cache download failed with HTTP {resp.status_code}")
        extract_archive(resp.content, paths)
        return str(found.get("matched_key") or key)

    # --------------- Internal ---------------
    def _call(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        resp = self._client.post(
            f"{self._service_url}/{method}",
            json=body,
            headers={"Authorization": f"Bearer {self._token}"},
        )
        if resp.status_code != 200:
            raise ActionsCacheError(f"{method} failed with HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ActionsCacheError(f"Failed to parse JSON from {method}") from exc
        if not isinstance(data, dict):
            raise ActionsCacheError(f"Malformed response from {method}")
        return data


__all__ = [
    "ActionsCacheClient",
    "ActionsCacheError",
    "cache_version",
]
