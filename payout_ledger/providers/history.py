"""
Transaction history retrieval on top of the explorer client.

Two shapes:
- fetch_recent: one bounded page of native and token transfers (rolling sync).
- fetch_all_*: page through an address's full history (backfills), stopping
  early once a page reaches past the cutoff timestamp. Pages are pulled
  lazily, so nothing past the cutoff page is ever requested.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, List, Optional, Tuple

from .base import RawTransaction, TransactionSource

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 10_000
DEFAULT_PAGE_DELAY_S = 0.5

PageFetcher = Callable[[str, Optional[int], Optional[int]], List[RawTransaction]]


class HistoryFetcher:
    """Paginates a TransactionSource with an inter-page delay."""

    def __init__(
        self,
        source: TransactionSource,
        *,
        page_size: int = MAX_PAGE_SIZE,
        page_delay_s: float = DEFAULT_PAGE_DELAY_S,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self.page_size = min(page_size, MAX_PAGE_SIZE)
        self.page_delay_s = page_delay_s
        self._sleep = sleep

    def fetch_recent(self, address: str) -> Tuple[List[RawTransaction], List[RawTransaction]]:
        """Newest page of native and token transactions, fetched sequentially."""
        native = self.source.fetch_native_transactions(address)
        tokens = self.source.fetch_token_transactions(address)
        return native, tokens

    def iter_pages(
        self,
        fetch_page: PageFetcher,
        address: str,
        cutoff_timestamp: Optional[int] = None,
    ) -> Iterator[List[RawTransaction]]:
        """
        Yield pages (newest first) until a page is empty, short, or contains a
        transaction older than cutoff_timestamp (unix seconds).
        """
        page = 1
        while True:
            txs = fetch_page(address, page, self.page_size)
            if not txs:
                logger.info("No more txs for %s at page %d", address, page)
                return
            yield txs

            if cutoff_timestamp is not None:
                oldest = min(tx.timestamp for tx in txs)
                if oldest < cutoff_timestamp:
                    logger.info(
                        "Hit cutoff for %s at page %d (oldest=%d cutoff=%d)",
                        address, page, oldest, cutoff_timestamp,
                    )
                    return

            if len(txs) < self.page_size:
                logger.info("Last page for %s at page %d (%d txs)", address, page, len(txs))
                return

            if self.page_delay_s > 0:
                self._sleep(self.page_delay_s)
            page += 1

    def _fetch_all(
        self,
        fetch_page: PageFetcher,
        label: str,
        address: str,
        cutoff_timestamp: Optional[int],
    ) -> List[RawTransaction]:
        logger.info("Fetching all %s txs for %s (cutoff=%s)", label, address, cutoff_timestamp)
        all_txs: List[RawTransaction] = []
        for txs in self.iter_pages(fetch_page, address, cutoff_timestamp):
            all_txs.extend(txs)
            logger.info("Fetched %s page for %s: %d txs (total %d)", label, address, len(txs), len(all_txs))

        if cutoff_timestamp is None:
            return all_txs
        kept = [tx for tx in all_txs if tx.timestamp > cutoff_timestamp]
        logger.info("Filtered %s txs for %s by cutoff: %d -> %d", label, address, len(all_txs), len(kept))
        return kept

    def fetch_all_native_transactions(
        self, address: str, cutoff_timestamp: Optional[int] = None
    ) -> List[RawTransaction]:
        return self._fetch_all(self.source.fetch_native_transactions, "native", address, cutoff_timestamp)

    def fetch_all_token_transactions(
        self, address: str, cutoff_timestamp: Optional[int] = None
    ) -> List[RawTransaction]:
        return self._fetch_all(self.source.fetch_token_transactions, "token", address, cutoff_timestamp)
