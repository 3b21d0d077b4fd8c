from __future__ import annotations

import httpx
import pytest

from common.github import GitHubApiError, GitHubClient, GitHubError


def _client(handler, **kwargs) -> GitHubClient:
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://api.github.com")
    return GitHubClient("tok", "octo/repo", client=http, sleep=lambda _s: None, **kwargs)


def test_list_caches_sends_key_and_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.url.params.get("key")
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(
            200,
            json={"total_count": 2, "actions_caches": [{"id": 1, "key": "foo_state"}, {"id": 2, "key": "foo_state2"}]},
        )

    caches = _client(handler).list_caches("foo_state")

    assert seen == {"path": "/repos/octo/repo/actions/caches", "key": "foo_state", "auth": "Bearer tok"}
    assert [c["key"] for c in caches] == ["foo_state", "foo_state2"]


def test_list_caches_tolerates_missing_field():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"total_count": 0})

    assert _client(handler).list_caches("x") == []


def test_retries_server_errors_then_succeeds():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503, headers={"Retry-After": "1"})
        return httpx.Response(200, json={"actions_caches": []})

    assert _client(handler).list_caches("k") == []
    assert calls["n"] == 3


def test_delete_not_found_raises_with_status():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        assert request.url.params.get("key") == "foo_state"
        return httpx.Response(404, json={"message": "Not Found"})

    with pytest.raises(GitHubApiError) as exc_info:
        _client(handler).delete_cache_by_key("foo_state")
    assert exc_info.value.status == 404
    assert str(exc_info.value) == "Not Found"


def test_exhausted_retries_on_transport_error():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(GitHubError) as exc_info:
        _client(handler, max_attempts=3).delete_cache_by_key("k")
    assert not isinstance(exc_info.value, GitHubApiError)
    assert calls["n"] == 3


def test_persistent_rate_limit_surfaces_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"message": "slow down"})

    with pytest.raises(GitHubApiError) as exc_info:
        _client(handler, max_attempts=2).list_caches("k")
    assert exc_info.value.status == 429


def test_rejects_bad_repository():
    with pytest.raises(ValueError):
        GitHubClient("tok", "no-slash")


def test_list_caches_follows_pages():
    pages = []

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page"))
        pages.append(page)
        per_page = int(request.url.params.get("per_page"))
        keys = [f"foo_state{i}" for i in range(5)]
        chunk = keys[(page - 1) * per_page : page * per_page]
        return httpx.Response(200, json={"total_count": len(keys), "actions_caches": [{"key": k} for k in chunk]})

    caches = _client(handler).list_caches("foo_state", per_page=2)

    assert [c["key"] for c in caches] == [f"foo_state{i}" for i in range(5)]
    assert pages == [1, 2, 3]
