"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import payout_ledger; use payout_ledger.ingest, payout_ledger.providers, etc.
Does not import cli.
"""

from __future__ import annotations

from . import core, payouts, providers, store
from ._version import __version__

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "core",
    "payouts",
    "providers",
    "store",
]
