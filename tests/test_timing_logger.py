"""Timing instrumentation."""

from __future__ import annotations

import json

import pytest

from dishgenius_chat.core.timing_logger import (
    clear_timing_context,
    clear_timing_events,
    close_timing_file,
    configure_timing_file,
    get_timing_events,
    set_timing_context,
    timed,
    timing_mark,
    timing_scope,
)


@timed
def _sync_work(x):
    return x * 2


@timed
async def _async_work(x):
    return x + 1


@pytest.fixture
def timing_request():
    set_timing_context("timing-req", True)
    yield "timing-req"
    clear_timing_context()
    clear_timing_events("timing-req")


def test_disabled_context_records_nothing():
    set_timing_context("quiet-req", False)
    try:
        assert _sync_work(2) == 4
        timing_mark("ignored")
    finally:
        clear_timing_context()
    assert get_timing_events("quiet-req") == []


def test_timed_sync_function(timing_request):
    assert _sync_work(3) == 6
    events = get_timing_events(timing_request)
    assert [e["event"] for e in events] == ["enter", "exit"]
    assert events[0]["label"].endswith("_sync_work")
    assert events[1]["elapsed_ms"] >= 0


@pytest.mark.asyncio
async def test_timed_async_function(timing_request):
    assert await _async_work(1) == 2
    assert [e["event"] for e in get_timing_events(timing_request)] == ["enter", "exit"]


def test_scope_and_mark(timing_request):
    with timing_scope("first_completion"):
        timing_mark("chat_completions_http_response")
    labels = [(e["event"], e["label"]) for e in get_timing_events(timing_request)]
    assert labels == [
        ("enter", "first_completion"),
        ("mark", "chat_completions_http_response"),
        ("exit", "first_completion"),
    ]


def test_file_output(tmp_path, timing_request):
    path = tmp_path / "nested" / "timing.jsonl"
    assert configure_timing_file(str(path))
    try:
        timing_mark("written")
    finally:
        close_timing_file()

    (line,) = path.read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["label"] == "written"
    assert record["request_id"] == timing_request
