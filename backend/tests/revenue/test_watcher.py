"""Tests for the passive revenue watcher."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from factories import BASE_USDT, PAY_TO, make_transfer_log

from app.payments.chains import ChainEntry, ChainRegistry
from app.payments.events import TRANSFER_EVENT_SIGNATURE, address_topic
from app.payments.rpc import RpcClient, RpcError
from app.revenue.records import RevenueLog
from app.revenue.watcher import (
    COLD_START_LOOKBACK,
    MAX_LOG_RANGE,
    RevenueWatcher,
    TickResult,
    block_chunks,
)

PRICE = 1_000_000


@pytest.fixture
def revenue_log(tmp_path):
    return RevenueLog(tmp_path)


@pytest.fixture
def watcher(revenue_log):
    return RevenueWatcher(
        ChainRegistry.from_override(None),
        pay_to=PAY_TO,
        price_units="1",
        revenue_log=revenue_log,
        interval=0,
    )


def _fake_rpc(watcher, key="base", latest=1000, logs=None):
    rpc = AsyncMock(spec=RpcClient)
    rpc.block_number.return_value = latest
    rpc.get_logs.return_value = logs or []
    watcher._clients[key] = rpc
    return rpc


def _records(revenue_log):
    if not revenue_log.path.exists():
        return []
    return [json.loads(line) for line in revenue_log.path.read_text().splitlines()]


class TestBlockChunks:
    def test_single_chunk(self):
        assert list(block_chunks(501, 1000)) == [(501, 1000)]

    def test_splits_large_range(self):
        chunks = list(block_chunks(1, 2 * MAX_LOG_RANGE + 5))
        assert chunks == [
            (1, MAX_LOG_RANGE),
            (MAX_LOG_RANGE + 1, 2 * MAX_LOG_RANGE),
            (2 * MAX_LOG_RANGE + 1, 2 * MAX_LOG_RANGE + 5),
        ]

    def test_empty_range(self):
        assert list(block_chunks(11, 10)) == []


class TestTick:
    """Tests for RevenueWatcher.tick."""

    @pytest.mark.asyncio
    async def test_cold_start_scans_lookback_window(self, watcher):
        rpc = _fake_rpc(watcher, latest=1000)

        result = await watcher.tick("base")

        assert result.ok is True
        assert (result.from_block, result.to_block) == (501, 1000)
        assert watcher._cursors["base"].last_block == 1000
        rpc.get_logs.assert_awaited_once_with(
            BASE_USDT, 501, 1000, [TRANSFER_EVENT_SIGNATURE, None, address_topic(PAY_TO)]
        )

    @pytest.mark.asyncio
    async def test_cold_start_near_genesis(self, watcher):
        rpc = _fake_rpc(watcher, latest=COLD_START_LOOKBACK - 100)

        result = await watcher.tick("base")

        assert (result.from_block, result.to_block) == (1, 400)
        rpc.get_logs.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_next_tick_starts_after_cursor(self, watcher):
        rpc = _fake_rpc(watcher, latest=1000)
        await watcher.tick("base")

        rpc.block_number.return_value = 1010
        result = await watcher.tick("base")

        assert (result.from_block, result.to_block) == (1001, 1010)
        assert rpc.get_logs.await_args.args[1:3] == (1001, 1010)
        assert watcher._cursors["base"].last_block == 1010

    @pytest.mark.asyncio
    async def test_no_new_blocks_is_noop(self, watcher):
        rpc = _fake_rpc(watcher, latest=1000)
        await watcher.tick("base")
        rpc.get_logs.reset_mock()

        result = await watcher.tick("base")

        assert result.ok is True
        assert result.from_block is None
        rpc.get_logs.assert_not_awaited()
        assert watcher._cursors["base"].last_block == 1000

    @pytest.mark.asyncio
    async def test_lagging_node_never_moves_cursor_back(self, watcher):
        rpc = _fake_rpc(watcher, latest=1000)
        await watcher.tick("base")

        rpc.block_number.return_value = 990
        await watcher.tick("base")

        assert watcher._cursors["base"].last_block == 1000

    @pytest.mark.asyncio
    async def test_records_qualifying_transfers(self, watcher, revenue_log):
        logs = [
            make_transfer_log(BASE_USDT, PAY_TO, PRICE, tx_hash="0x" + "a" * 64),
            make_transfer_log(BASE_USDT, PAY_TO, PRICE - 1, tx_hash="0x" + "b" * 64),
            make_transfer_log(BASE_USDT, PAY_TO, PRICE * 3, tx_hash="0x" + "c" * 64),
        ]
        _fake_rpc(watcher, logs=logs)

        result = await watcher.tick("base")

        assert result.records == 2
        records = _records(revenue_log)
        assert [r["txHash"] for r in records] == ["0x" + "a" * 64, "0x" + "c" * 64]
        assert records[0]["chain"] == "base"
        assert records[0]["token"] == "USDT"
        assert records[0]["to"] == PAY_TO
        assert records[0]["value"] == str(PRICE)
        assert "at" in records[0]

    @pytest.mark.asyncio
    async def test_malformed_logs_are_skipped(self, watcher, revenue_log):
        bad = make_transfer_log(BASE_USDT, PAY_TO, PRICE)
        bad["data"] = "0x"
        _fake_rpc(watcher, logs=[bad])

        result = await watcher.tick("base")

        assert result.ok is True
        assert result.records == 0
        assert _records(revenue_log) == []

    @pytest.mark.asyncio
    async def test_non_object_log_entries_are_skipped(self, watcher, revenue_log):
        logs = [make_transfer_log(BASE_USDT, PAY_TO, PRICE), "garbage"]
        rpc = _fake_rpc(watcher, latest=1000, logs=logs)

        result = await watcher.tick("base")

        assert result.records == 1
        assert watcher._cursors["base"].last_block == 1000

        rpc.block_number.return_value = 1005
        rpc.get_logs.return_value = []
        await watcher.tick("base")

        assert rpc.get_logs.await_args.args[1:3] == (1001, 1005)
        assert len(_records(revenue_log)) == 1

    @pytest.mark.asyncio
    async def test_processing_error_still_advances_cursor(self, watcher, revenue_log):
        rpc = _fake_rpc(watcher, latest=1000, logs=[make_transfer_log(BASE_USDT, PAY_TO, PRICE)])
        with patch.object(RevenueLog, "append", side_effect=RuntimeError("disk gone")):
            with pytest.raises(RuntimeError):
                await watcher.tick("base")

        assert watcher._cursors["base"].last_block == 1000

        rpc.block_number.return_value = 1005
        rpc.get_logs.return_value = []
        result = await watcher.tick("base")

        assert (result.from_block, result.to_block) == (1001, 1005)
        assert _records(revenue_log) == []

    @pytest.mark.asyncio
    async def test_block_number_failure_leaves_cursor(self, watcher):
        rpc = _fake_rpc(watcher)
        rpc.block_number.side_effect = httpx.ConnectError("down")

        result = await watcher.tick("base")

        assert result.ok is False
        assert "eth_blockNumber" in result.errors[0]
        assert watcher._cursors["base"].last_block is None

    @pytest.mark.asyncio
    async def test_log_failure_still_advances_cursor(self, watcher):
        rpc = _fake_rpc(watcher, latest=1000)
        rpc.get_logs.side_effect = RpcError("query returned more than 10000 results")

        result = await watcher.tick("base")

        assert result.ok is False
        assert watcher._cursors["base"].last_block == 1000

        rpc.get_logs.side_effect = None
        rpc.block_number.return_value = 1001
        result = await watcher.tick("base")
        assert (result.from_block, result.to_block) == (1001, 1001)

    @pytest.mark.asyncio
    async def test_partial_chunk_failure_keeps_other_chunks(self, watcher, revenue_log):
        rpc = _fake_rpc(watcher, latest=1000)
        await watcher.tick("base")
        rpc.block_number.return_value = 1000 + 2 * MAX_LOG_RANGE
        rpc.get_logs.side_effect = [
            RpcError("timeout"),
            [make_transfer_log(BASE_USDT, PAY_TO, PRICE)],
        ]

        result = await watcher.tick("base")

        assert result.ok is False
        assert result.records == 1
        assert len(_records(revenue_log)) == 1
        assert watcher._cursors["base"].last_block == 1000 + 2 * MAX_LOG_RANGE

    @pytest.mark.asyncio
    async def test_unusable_chain(self, revenue_log):
        registry = ChainRegistry({"dev": ChainEntry()})
        watcher = RevenueWatcher(registry, PAY_TO, "1", revenue_log)

        result = await watcher.tick("dev")

        assert result.ok is False
        assert watcher._cursors["dev"].last_block is None

    @pytest.mark.asyncio
    async def test_chains_have_independent_cursors(self, watcher):
        _fake_rpc(watcher, key="base", latest=1000)
        _fake_rpc(watcher, key="polygon", latest=50_000)

        await watcher.tick("base")
        await watcher.tick("polygon")

        assert watcher._cursors["base"].last_block == 1000
        assert watcher._cursors["polygon"].last_block == 50_000
        assert watcher._cursors["arbitrum"].last_block is None


class TestScheduling:
    """Tests for the per-chain polling loop."""

    @pytest.mark.asyncio
    async def test_loop_survives_tick_faults(self, watcher):
        calls = []

        async def flaky_tick(key):
            calls.append(key)
            if len(calls) == 1:
                raise RuntimeError("unexpected")
            if len(calls) == 2:
                return TickResult.fault(key, "rpc down")
            return TickResult(chain=key, ok=True)

        watcher.tick = flaky_tick
        task = asyncio.create_task(watcher._run("base"))
        for _ in range(50):
            await asyncio.sleep(0)
            if len(calls) >= 3:
                break
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert calls[:3] == ["base", "base", "base"]

    @pytest.mark.asyncio
    async def test_slow_chain_does_not_block_others(self, revenue_log):
        registry = ChainRegistry.from_override(None)
        watcher = RevenueWatcher(registry, PAY_TO, "1", revenue_log, interval=3600)
        stuck = asyncio.Event()
        ticked = []

        async def tick(key):
            if key == "polygon":
                await stuck.wait()
            ticked.append(key)
            return TickResult(chain=key, ok=True)

        watcher.tick = tick
        watcher.start()
        for _ in range(20):
            await asyncio.sleep(0)

        assert sorted(ticked) == ["arbitrum", "base", "optimism"]
        await watcher.stop()
        assert watcher._tasks == {}

    @pytest.mark.asyncio
    async def test_start_skips_unusable_chains(self, revenue_log):
        registry = ChainRegistry({
            "dev": ChainEntry(),
            "base": ChainEntry(rpcUrl="http://node", token={"address": BASE_USDT}),
        })
        watcher = RevenueWatcher(registry, PAY_TO, "1", revenue_log, interval=3600)
        watcher.tick = AsyncMock(return_value=TickResult(chain="base", ok=True))

        watcher.start()
        await asyncio.sleep(0)

        assert list(watcher._tasks) == ["base"]
        await watcher.stop()
