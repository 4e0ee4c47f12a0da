"""Command-line entrypoints. Shared logging flags live here."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def add_logging_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    ap.add_argument("--log-file", default=None, help="Also append log lines to this file")


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    handlers: list = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, handlers=handlers, force=True)
