"""
Load config from config.yaml with optional env overrides.
Single source of truth for explorer endpoint, retry/breaker tuning, sync pacing,
payout rules, DB path, and alerting.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

# Defaults if no YAML or env
_DEFAULTS = {
    "explorer": {
        "base_url": "https://api.etherscan.io/v2/api",
        "chain_id": "42161",
        "api_key": None,
        "timeout_s": 10.0,
        "daily_limit": 100_000,
        "page_size": 10_000,
        "page_delay_s": 0.5,
    },
    "retry": {
        "max_retries": 3,
        "base_delay_s": 1.0,
        "backoff_factor": 2.0,
        "max_delay_s": 30.0,
    },
    "circuit": {
        "failure_threshold": 5,
        "reset_timeout_s": 60.0,
    },
    "usage": {"alert_thresholds": [80, 90, 95]},
    "sync": {
        "address_delay_s": 0.5,
        "firm_delay_s": 1.0,
        "retention_hours": 24,
    },
    "payouts": {
        "window_hours": 24,
        "min_amount_usd": 10,
        "native_price_usd": 2500,
        "token_methods": {"RISEPAY": "rise", "USDC": "crypto", "USDT": "crypto"},
        "token_prices": {"RISEPAY": 1.0, "USDC": 1.0, "USDT": 1.0},
    },
    "db": {"path": "data/payout_ledger.sqlite", "busy_timeout_ms": 5000},
    "alerts": {"slack_webhook_url": None},
}


def _config_yaml_path() -> Path:
    """config.yaml lives at repo root (parent of package dir) unless PAYOUT_LEDGER_CONFIG points elsewhere."""
    override = os.environ.get("PAYOUT_LEDGER_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    config_path = _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    api_key = os.environ.get("EXPLORER_API_KEY") or os.environ.get("ARBISCAN_API_KEY")
    if api_key:
        overrides.setdefault("explorer", {})["api_key"] = api_key
    path = os.environ.get("PAYOUT_LEDGER_DB_PATH")
    if path:
        overrides.setdefault("db", {})["path"] = path
    webhook = os.environ.get("SLACK_WEBHOOK_URL")
    if webhook:
        overrides.setdefault("alerts", {})["slack_webhook_url"] = webhook
    return overrides


def get_config() -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml())
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def explorer_api_key() -> Optional[str]:
    key = get_config()["explorer"].get("api_key")
    return str(key).strip() if key else None


def explorer_settings() -> Dict[str, Any]:
    return dict(get_config()["explorer"])


def retry_settings() -> Dict[str, Any]:
    return dict(get_config()["retry"])


def circuit_settings() -> Dict[str, Any]:
    return dict(get_config()["circuit"])


def usage_alert_thresholds() -> List[int]:
    return [int(t) for t in get_config()["usage"]["alert_thresholds"]]


def sync_settings() -> Dict[str, Any]:
    return dict(get_config()["sync"])


def payout_settings() -> Dict[str, Any]:
    return dict(get_config()["payouts"])


def db_path() -> str:
    return str(get_config()["db"]["path"])


def db_busy_timeout_ms() -> int:
    return int(get_config()["db"]["busy_timeout_ms"])


def slack_webhook_url() -> Optional[str]:
    url = get_config()["alerts"].get("slack_webhook_url")
    return str(url) if url else None
