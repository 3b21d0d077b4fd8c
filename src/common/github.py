from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx


DEFAULT_API_BASE = "https://api.github.com"
API_VERSION = "2022-11-28"

# Statuses worth retrying; everything else surfaces immediately
RETRY_STATUSES = (429, 500, 502, 503, 504)

log = logging.getLogger(__name__)


class GitHubError(RuntimeError):
    """Base error for the GitHub REST client."""


class GitHubApiError(GitHubError):
    """API answered with a non-success HTTP status."""

    def __init__(self, message: str, *, status: int) -> None:
        super().__init__(message)
        self.status = status


def _retry_after(resp: httpx.Response) -> Optional[float]:
    raw = resp.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class GitHubClient:
    """
    Minimal GitHub REST client for the repository Actions cache endpoints.

    Notes
    - Authenticates with a repo token (`Authorization: Bearer`).
    - Retries transport errors, 429 and 5xx with capped exponential backoff,
      honoring `Retry-After` when present.
    - Non-retryable errors raise `GitHubApiError` carrying the HTTP status.
    """

    def __init__(
        self,
        token: str,
        repository: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 15.0,
        max_attempts: int = 4,
        client: Optional[httpx.Client] = None,
        sleep=time.sleep,
    ) -> None:
        if not token:
            raise ValueError("token is required")
        owner, sep, repo = repository.partition("/")
        if not sep or not owner or not repo:
            raise ValueError(f"repository must look like 'owner/repo', got {repository!r}")
        self._owner = owner
        self._repo = repo
        self._max_attempts = max(1, max_attempts)
        self._sleep = sleep
        self._owns_client = client is None
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if client is None:
            self._client = httpx.Client(base_url=api_base.rstrip("/"), timeout=timeout, headers=headers)
        else:
            client.headers.update(headers)
            self._client = client

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def _caches_path(self) -> str:
        return f"/repos/{self._owner}/{self._repo}/actions/caches"

    # --------------- Public API ---------------
    def list_caches(self, key: Optional[str] = None, *, per_page: int = 100) -> List[Dict[str, Any]]:
        """
        List Actions cache entries of the repository.

        `key` is matched by the API as a prefix, so callers needing a single
        entry must compare keys themselves.
        """
        out: List[Dict[str, Any]] = []
        page = 1
        while True:
            params: Dict[str, Any] = {"per_page": per_page, "page": page}
            if key:
                params["key"] = key
            data = self._request("GET", self._caches_path, params=params)
            caches = data.get("actions_caches") if isinstance(data, dict) else None
            if not isinstance(caches, list) or not caches:
                return out
            out.extend(c for c in caches if isinstance(c, dict))
            total = data.get("total_count")
            # Short page or reported total reached: nothing left to fetch
            if len(caches) < per_page or (isinstance(total, int) and len(out) >= total):
                return out
            page += 1

    def delete_cache_by_key(self, key: str, *, ref: Optional[str] = None) -> Dict[str, Any]:
        """Delete every cache entry with exactly `key` (optionally scoped to `ref`)."""
        params: Dict[str, Any] = {"key": key}
        if ref:
            params["ref"] = ref
        return self._request("DELETE", self._caches_path, params=params)

    # --------------- Internal ---------------
    def _request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        attempt = 0
        backoff = 0.5
        last_exc: Optional[Exception] = None
        while attempt < self._max_attempts:
            attempt += 1
            try:
                resp = self._client.request(method, path, params=params)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                last_exc = exc
                log.debug("GitHub %s %s failed (attempt %d): %s", method, path, attempt, exc)
            else:
                if 200 <= resp.status_code < 300:
                    if not resp.content:
                        return {}
                    try:
                        body = resp.json()
                    except ValueError as exc:
                        raise GitHubError("Failed to parse JSON from GitHub API") from exc
                    return body if isinstance(body, dict) else {}

                if resp.status_code in RETRY_STATUSES and attempt < self._max_attempts:
                    delay = _retry_after(resp)
                    log.debug("GitHub %s %s returned %d, retrying", method, path, resp.status_code)
                    self._sleep(min(delay if delay is not None else backoff, 10.0))
                    backoff = min(backoff * 2, 8.0)
                    continue

                raise GitHubApiError(_error_message(resp), status=resp.status_code)

            if attempt < self._max_attempts:
                self._sleep(backoff)
                backoff = min(backoff * 2, 8.0)

        if last_exc is not None:
            raise GitHubError("Failed request after retries") from last_exc
        raise GitHubError("Failed request after retries (unknown error)")


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"HTTP {resp.status_code} from GitHub: {resp.text[:200]}"


__all__ = [
    "GitHubClient",
    "GitHubError",
    "GitHubApiError",
]
