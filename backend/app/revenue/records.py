"""Append-only revenue record file (newline-delimited JSON)."""

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from ..logging_config import get_logger

logger = get_logger("paygate.revenue")

REVENUE_LOG_FILENAME = "revenue-events.log"


@dataclass(frozen=True)
class RevenueRecord:
    """One qualifying incoming transfer seen by the watcher."""

    at: str  # ISO-8601, time the watcher saw the log
    chain: str
    token: str
    to: str
    value: str  # Base units, as a string to keep full precision
    txHash: str | None

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))


class RevenueLog:
    """Best-effort NDJSON sink. A failed write is dropped, never raised."""

    def __init__(self, log_dir: str | Path):
        self.log_dir = Path(log_dir)
        self.path = self.log_dir / REVENUE_LOG_FILENAME

    def append(self, record: RevenueRecord) -> bool:
        """Append one line; returns False if the write failed."""
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(record.to_json() + "\n")
        except OSError as e:
            logger.debug(f"Revenue log write to {self.path} dropped: {e}")
            return False
        return True
