"""
Default explorer wiring from config.yaml settings.

Builds the process-wide circuit breaker and usage tracker once and hands the
same instances to every client, so one firm's failures protect all firms.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from .. import config
from ..alerts import AlertSink, create_alert_sink
from .explorer import ExplorerClient
from .history import HistoryFetcher
from .resilience import CircuitBreaker, RetryConfig
from .usage import UsageTracker


def create_circuit_breaker(alert_sink: Optional[AlertSink] = None) -> CircuitBreaker:
    cfg = config.circuit_settings()
    return CircuitBreaker(
        "arbiscan",
        failure_threshold=int(cfg["failure_threshold"]),
        reset_timeout_s=float(cfg["reset_timeout_s"]),
        alert_sink=alert_sink,
    )


def create_usage_tracker(alert_sink: Optional[AlertSink] = None) -> UsageTracker:
    return UsageTracker(
        int(config.explorer_settings()["daily_limit"]),
        alert_thresholds=config.usage_alert_thresholds(),
        alert_sink=alert_sink,
        provider_name="arbiscan",
    )


def create_retry_config() -> RetryConfig:
    cfg = config.retry_settings()
    return RetryConfig(
        max_retries=int(cfg["max_retries"]),
        base_delay_s=float(cfg["base_delay_s"]),
        max_delay_s=float(cfg["max_delay_s"]),
        backoff_factor=float(cfg["backoff_factor"]),
    )


def create_explorer_client(
    *,
    api_key: Optional[str] = None,
    circuit_breaker: Optional[CircuitBreaker] = None,
    usage_tracker: Optional[UsageTracker] = None,
    alert_sink: Optional[AlertSink] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ExplorerClient:
    """Build an explorer client from config; pass shared breaker/tracker to reuse them."""
    sink = alert_sink or create_alert_sink(config.slack_webhook_url())
    settings = config.explorer_settings()
    return ExplorerClient(
        api_key if api_key is not None else config.explorer_api_key(),
        circuit_breaker=circuit_breaker or create_circuit_breaker(sink),
        usage_tracker=usage_tracker or create_usage_tracker(sink),
        retry_config=create_retry_config(),
        base_url=str(settings["base_url"]),
        chain_id=str(settings["chain_id"]),
        timeout_s=float(settings["timeout_s"]),
        sleep=sleep,
    )


def create_history_fetcher(
    client: ExplorerClient,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> HistoryFetcher:
    settings = config.explorer_settings()
    return HistoryFetcher(
        client,
        page_size=int(settings["page_size"]),
        page_delay_s=float(settings["page_delay_s"]),
        sleep=sleep,
    )
