"""Passive revenue watcher.

Polls each configured chain for incoming token transfers to the operator
address and appends qualifying ones to the revenue log. It works from chain
logs alone and never talks to request handlers.

Per chain the loop is: tick, sleep ``interval`` seconds, tick again. Ticks of
one chain never overlap; chains run as separate tasks so a slow endpoint only
delays its own chain. Delivery is at-least-once and best effort: blocks whose
log query failed within a tick are not retried.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..logging_config import get_logger, log_revenue_event
from ..payments.chains import ChainConfig, ChainRegistry
from ..payments.events import TRANSFER_EVENT_SIGNATURE, address_topic, decode_transfer_log
from ..payments.rpc import RpcClient, RpcError
from ..payments.units import format_units, to_base_units
from .records import RevenueLog, RevenueRecord

logger = get_logger("paygate.revenue")

POLL_INTERVAL_SECONDS = 60.0
# Blocks scanned behind the head on the first tick after startup
COLD_START_LOOKBACK = 500
# Widest block range requested in one eth_getLogs call
MAX_LOG_RANGE = 1000

RPC_ERRORS = (RpcError, httpx.HTTPError)


@dataclass
class WatcherCursor:
    chain: str
    last_block: Optional[int] = None  # None until the first successful tick


@dataclass
class TickResult:
    """Outcome of one scan of one chain."""

    chain: str
    ok: bool
    from_block: Optional[int] = None
    to_block: Optional[int] = None
    records: int = 0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def fault(cls, chain: str, error: str) -> "TickResult":
        return cls(chain=chain, ok=False, errors=[error])


def block_chunks(from_block: int, to_block: int, span: int = MAX_LOG_RANGE):
    """Split the inclusive range into consecutive ranges of at most ``span`` blocks."""
    start = from_block
    while start <= to_block:
        end = min(start + span - 1, to_block)
        yield start, end
        start = end + 1


class RevenueWatcher:
    """Owns one cursor and one RPC client per chain, and the polling tasks."""

    def __init__(
        self,
        registry: ChainRegistry,
        pay_to: str,
        price_units: str,
        revenue_log: RevenueLog,
        interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.registry = registry
        self.pay_to = pay_to.lower()
        self.price_units = price_units
        self.revenue_log = revenue_log
        self.interval = interval
        self._cursors: dict[str, WatcherCursor] = {
            key: WatcherCursor(chain=key) for key in registry.keys()
        }
        self._clients: dict[str, RpcClient] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def start(self) -> None:
        """Start one polling task per usable chain."""
        for key in self._cursors:
            if self.registry.lookup(key) is None:
                logger.warning(f"Revenue watcher skipping {key}: no RPC endpoint or token address")
                continue
            if key in self._tasks:
                continue
            self._tasks[key] = asyncio.create_task(self._run(key), name=f"revenue-watcher:{key}")
        logger.info(f"Revenue watcher started for {len(self._tasks)} chain(s)")

    async def stop(self) -> None:
        """Cancel the polling tasks and close the RPC clients."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

    async def _run(self, key: str) -> None:
        while True:
            try:
                result = await self.tick(key)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Revenue scan crashed for {key}")
                result = TickResult.fault(key, repr(e))
            if not result.ok:
                logger.warning(f"Revenue scan error | {key} | {'; '.join(result.errors)}")
            await asyncio.sleep(self.interval)

    def _client(self, chain: ChainConfig) -> RpcClient:
        client = self._clients.get(chain.key)
        if client is None:
            client = RpcClient(chain.rpc_url)
            self._clients[chain.key] = client
        return client

    async def tick(self, key: str) -> TickResult:
        """Scan the blocks produced since the last tick of ``key``.

        The cursor moves to the chain head once the head is known, whether or
        not every log query succeeded.
        """
        chain = self.registry.lookup(key)
        if chain is None:
            return TickResult.fault(key, "chain not configured")
        cursor = self._cursors.setdefault(key, WatcherCursor(chain=key))
        rpc = self._client(chain)

        try:
            latest = await rpc.block_number()
        except RPC_ERRORS as e:
            return TickResult.fault(key, f"eth_blockNumber: {e}")

        if cursor.last_block is None:
            cursor.last_block = max(0, latest - COLD_START_LOOKBACK)

        from_block = cursor.last_block + 1
        if from_block > latest:
            # No new blocks. A lagging node never moves the cursor back.
            return TickResult(chain=key, ok=True)

        threshold = to_base_units(self.price_units, chain.token.decimals)
        topics = [TRANSFER_EVENT_SIGNATURE, None, address_topic(self.pay_to)]
        result = TickResult(chain=key, ok=True, from_block=from_block, to_block=latest)

        try:
            for start, end in block_chunks(from_block, latest):
                try:
                    logs = await rpc.get_logs(chain.token.address, start, end, topics)
                except RPC_ERRORS as e:
                    result.ok = False
                    result.errors.append(f"eth_getLogs {start}-{end}: {e}")
                    continue
                for log in logs:
                    event = decode_transfer_log(log)
                    if event is None or event.value < threshold:
                        continue
                    self._record(chain, event.value, event.tx_hash)
                    result.records += 1
        finally:
            # A range is scanned at most once, even if processing it raised.
            cursor.last_block = latest
        return result

    def _record(self, chain: ChainConfig, value: int, tx_hash: Optional[str]) -> None:
        record = RevenueRecord(
            at=datetime.now(timezone.utc).isoformat(),
            chain=chain.key,
            token=chain.token.symbol,
            to=self.pay_to,
            value=str(value),
            txHash=tx_hash,
        )
        log_revenue_event(
            chain.key, chain.token.symbol, format_units(value, chain.token.decimals), tx_hash
        )
        self.revenue_log.append(record)
