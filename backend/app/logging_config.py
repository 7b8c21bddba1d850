"""Logging setup and structured log helpers."""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.handlers[:] = [handler]
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


_verify_logger = logging.getLogger("paygate.verify")
_revenue_logger = logging.getLogger("paygate.revenue")


def log_verification(chain: str | None, tx_hash: str, outcome: str, amount: int | None = None):
    """One line per /verify outcome."""
    line = f"VERIFY | {chain or '-'} | {tx_hash} | {outcome}"
    if amount is not None:
        line += f" | amount={amount}"
    level = logging.ERROR if outcome == "server_error" else logging.INFO
    _verify_logger.log(level, line)


def log_revenue_event(chain: str, token: str, value_display: str, tx_hash: str | None):
    """One line per qualifying incoming transfer found by the watcher."""
    _revenue_logger.info(f"REVENUE | {chain} | +{value_display} {token} | {tx_hash}")
