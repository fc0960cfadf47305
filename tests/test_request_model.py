"""Tests for the request data model and option merging."""

from __future__ import annotations

import dataclasses

import pytest
from pydantic import ValidationError

from VarnishPurge.config import TransportOptions
from VarnishPurge.net.request import (
    CompletionRecord,
    Request,
    RequestQueue,
    merge_headers,
    merge_options,
)


def test_request_is_immutable() -> None:
    request = Request("http://cache.test/a", "purge", headers={"X-A": "1"})

    assert request.method == "PURGE"
    with pytest.raises(dataclasses.FrozenInstanceError):
        request.url = "http://elsewhere.test/"  # type: ignore[misc]
    with pytest.raises(TypeError):
        request.headers["X-B"] = "2"  # type: ignore[index]


def test_request_copies_caller_mappings() -> None:
    headers = {"X-A": "1"}
    request = Request("http://cache.test/a", headers=headers)

    headers["X-A"] = "changed"

    assert request.headers["X-A"] == "1"


def test_queue_is_fifo() -> None:
    queue = RequestQueue()
    first = queue.get("http://cache.test/1")
    second = queue.post("http://cache.test/2", body="data")
    third = queue.request("http://cache.test/3", "PURGE")

    assert queue.remaining == 3
    assert queue.peek() is first
    assert [queue.pop_next() for _ in range(3)] == [first, second, third]
    assert not queue
    assert queue.peek() is None


def test_pop_from_empty_queue_raises() -> None:
    with pytest.raises(IndexError):
        RequestQueue().pop_next()


def test_merge_headers_overrides_win_case_insensitively() -> None:
    merged = merge_headers(
        {"User-Agent": "default", "X-Keep": "yes"},
        {"user-agent": "custom", "X-New": "1"},
    )

    assert merged == {"X-Keep": "yes", "user-agent": "custom", "X-New": "1"}


def test_merge_headers_handles_missing_sides() -> None:
    assert merge_headers(None, None) == {}
    assert merge_headers({"A": "1"}, None) == {"A": "1"}


def test_merge_options_overrides_win() -> None:
    defaults = TransportOptions(timeout_s=30, verify_tls=True)

    merged = merge_options(defaults, {"timeout_s": 5, "verify_tls": False})

    assert merged.timeout_s == 5
    assert merged.verify_tls is False
    assert merged.connect_timeout_s == defaults.connect_timeout_s
    assert defaults.timeout_s == 30


def test_merge_options_without_overrides_returns_defaults() -> None:
    defaults = TransportOptions()

    assert merge_options(defaults, None) is defaults
    assert merge_options(defaults, {}) is defaults


def test_merge_options_rejects_unknown_keys() -> None:
    with pytest.raises(ValidationError):
        merge_options(TransportOptions(), {"retries": 3})


def test_completion_record_transport_ok() -> None:
    request = Request("http://cache.test/a")

    assert CompletionRecord(request, 0, status_code=500).transport_ok
    assert not CompletionRecord(request, 0, error="refused").transport_ok


def test_request_defaults_are_empty_read_only_mappings() -> None:
    first = Request("http://cache.test/a")
    second = Request("http://cache.test/b")

    assert dict(first.headers) == {}
    assert dict(first.options) == {}
    with pytest.raises(TypeError):
        first.headers["X-A"] = "1"  # type: ignore[index]
    assert first.headers is not second.headers


def test_requests_are_hashable() -> None:
    purge = Request("http://cache.test/a", "purge", headers={"X-A": "1"}, body={"k": "v"})
    same = Request("http://cache.test/a", "PURGE", headers={"X-A": "1"}, body={"k": "v"})

    assert hash(purge) == hash(same)
    assert {purge, same} == {purge}
    assert hash(CompletionRecord(purge, 0, status_code=200)) == hash(
        CompletionRecord(same, 0, status_code=200)
    )
