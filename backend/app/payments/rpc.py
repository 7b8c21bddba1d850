"""Minimal EVM JSON-RPC client over httpx."""

import itertools
from typing import Any, Optional

import httpx

DEFAULT_TIMEOUT = 30.0


class RpcError(Exception):
    """Raised when a JSON-RPC call returns an error or an unusable response."""
    pass


class RpcClient:
    """JSON-RPC client bound to a single node endpoint.

    Usable as an async context manager for one-off calls (``/verify``) or
    held open for the lifetime of a chain's watcher loop.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def call(self, method: str, params: list) -> Any:
        """Make a JSON-RPC call and return its ``result`` member."""
        response = await self._http.post(
            self.rpc_url,
            json={
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": next(self._ids),
            },
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as e:
            raise RpcError(f"{method}: response is not JSON") from e

        if not isinstance(body, dict):
            raise RpcError(f"{method}: unexpected response {body!r}")
        if "error" in body:
            raise RpcError(f"{method}: RPC error: {body['error']}")

        return body.get("result")

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        """Receipt of a mined transaction, or None while it is pending/unknown."""
        receipt = await self.call("eth_getTransactionReceipt", [tx_hash])
        if receipt is not None and not isinstance(receipt, dict):
            raise RpcError(f"eth_getTransactionReceipt: unexpected result {receipt!r}")
        return receipt

    async def block_number(self) -> int:
        result = await self.call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise RpcError(f"eth_blockNumber: unexpected result {result!r}") from e

    async def get_logs(
        self,
        address: str,
        from_block: int,
        to_block: int,
        topics: list,
    ) -> list[dict]:
        """Logs of ``address`` in the inclusive block range matching ``topics``."""
        result = await self.call(
            "eth_getLogs",
            [
                {
                    "address": address,
                    "fromBlock": hex(from_block),
                    "toBlock": hex(to_block),
                    "topics": topics,
                }
            ],
        )
        if not isinstance(result, list):
            raise RpcError(f"eth_getLogs: unexpected result {result!r}")
        return result


def parse_status(receipt: dict) -> int:
    """Receipt execution status: 1 for success, 0 for reverted."""
    status = receipt.get("status", "0x0")
    try:
        return int(status, 16) if isinstance(status, str) else int(status)
    except (TypeError, ValueError) as e:
        raise RpcError(f"receipt has malformed status {status!r}") from e
