"""
Best-effort operator alerts.

Alerts are fire-and-forget: posting happens on a daemon thread and any
failure is logged at DEBUG and dropped. Nothing in the sync path ever waits
on, or fails because of, an alert.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_S = 5.0


class AlertSink:
    """Interface for alert delivery. Subclasses implement _deliver()."""

    def send(self, text: str) -> None:
        """Post a one-line alert. Never raises."""
        try:
            self._deliver(text)
        except Exception as exc:
            logger.debug("Alert delivery failed: %s", exc)

    def send_alert(
        self,
        service: str,
        message: str,
        severity: str = "WARNING",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Format a service alert as a single line and send it."""
        text = f"[{severity}] {service}: {message}"
        if details:
            text += " (" + ", ".join(f"{k}={v}" for k, v in details.items()) + ")"
        self.send(text)

    def flush(self, timeout_s: float = HTTP_TIMEOUT_S) -> None:
        """Wait for in-flight deliveries. Synchronous sinks have nothing to wait for."""
        return None

    def _deliver(self, text: str) -> None:
        raise NotImplementedError


class NullAlertSink(AlertSink):
    """Drops every alert. Used when no webhook is configured."""

    def _deliver(self, text: str) -> None:
        return None


class WebhookAlertSink(AlertSink):
    """
    Slack-compatible webhook sink: POST {"text": ...} as JSON.

    With background=True (default) each post runs on a daemon thread so the
    caller returns immediately.
    """

    def __init__(
        self,
        url: str,
        *,
        background: bool = True,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url
        self._background = background
        self._session = session or requests.Session()
        self._threads: List[threading.Thread] = []

    def _deliver(self, text: str) -> None:
        if not self._background:
            self._post(text)
            return
        t = threading.Thread(target=self._post, args=(text,), daemon=True)
        self._threads = [th for th in self._threads if th.is_alive()]
        self._threads.append(t)
        t.start()

    def _post(self, text: str) -> None:
        try:
            resp = self._session.post(self._url, json={"text": text}, timeout=HTTP_TIMEOUT_S)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.debug("Webhook alert failed: %s", exc)

    def flush(self, timeout_s: float = HTTP_TIMEOUT_S) -> None:
        """Wait for in-flight background posts (CLI exit, tests)."""
        for t in self._threads:
            t.join(timeout_s)
        self._threads = [t for t in self._threads if t.is_alive()]


def create_alert_sink(webhook_url: Optional[str]) -> AlertSink:
    """Webhook sink when a URL is configured, otherwise a null sink."""
    if webhook_url:
        return WebhookAlertSink(webhook_url)
    return NullAlertSink()
