"""Payout normalization: ledger entities and the transaction -> payout transform."""

from __future__ import annotations

from .models import Firm, PaymentMethod, Payout
from .processor import PayoutRules, latest_payout, process_payouts

__all__ = ["Firm", "PaymentMethod", "Payout", "PayoutRules", "latest_payout", "process_payouts"]
