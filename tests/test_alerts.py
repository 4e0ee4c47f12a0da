"""Alert sinks: formatting, best-effort delivery, webhook payload."""
from __future__ import annotations

import requests

from payout_ledger.alerts import NullAlertSink, WebhookAlertSink, create_alert_sink
from tests.fakes import FakeResponse, RecordingAlertSink


class PostRecorder:
    def __init__(self, response=None, error=None):
        self.posts = []
        self._response = response or FakeResponse({"ok": True})
        self._error = error

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        if self._error is not None:
            raise self._error
        return self._response


def test_send_alert_formats_single_line():
    sink = RecordingAlertSink()
    sink.send_alert("arbiscan", "Circuit opened", "CRITICAL", {"failure_count": 5})
    assert sink.texts == ["[CRITICAL] arbiscan: Circuit opened (failure_count=5)"]


def test_create_alert_sink_selects_by_url():
    assert isinstance(create_alert_sink(None), NullAlertSink)
    assert isinstance(create_alert_sink("https://hooks.example/x"), WebhookAlertSink)


def test_webhook_posts_text_payload():
    session = PostRecorder()
    sink = WebhookAlertSink("https://hooks.example/x", background=False, session=session)
    sink.send("hello")
    assert session.posts == [("https://hooks.example/x", {"text": "hello"}, 5.0)]


def test_webhook_background_flush_waits():
    session = PostRecorder()
    sink = WebhookAlertSink("https://hooks.example/x", session=session)
    sink.send("one")
    sink.send("two")
    sink.flush()
    assert sorted(p[1]["text"] for p in session.posts) == ["one", "two"]


def test_webhook_failures_are_swallowed():
    sink = WebhookAlertSink(
        "https://hooks.example/x",
        background=False,
        session=PostRecorder(error=requests.ConnectionError("down")),
    )
    sink.send("ignored")
    bad_status = WebhookAlertSink(
        "https://hooks.example/x", background=False, session=PostRecorder(FakeResponse(None, 500))
    )
    bad_status.send("ignored")


def test_finished_background_posts_are_not_retained():
    session = PostRecorder()
    sink = WebhookAlertSink("https://hooks.example/x", session=session)
    for i in range(5):
        sink.send(f"alert {i}")
        sink._threads[-1].join(5.0)
    assert len(sink._threads) == 1
    assert len(session.posts) == 5
