"""Keep tests independent of the developer's config.yaml and environment."""
from __future__ import annotations

import pytest

_ENV_VARS = (
    "EXPLORER_API_KEY",
    "ARBISCAN_API_KEY",
    "PAYOUT_LEDGER_DB_PATH",
    "SLACK_WEBHOOK_URL",
    "PAYOUT_LEDGER_DETERMINISTIC_TIME",
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PAYOUT_LEDGER_CONFIG", str(tmp_path / "no-config.yaml"))
