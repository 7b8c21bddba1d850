"""Stablecoin payment verification on EVM chains.

Verifies that a qualifying token transfer actually occurred on-chain by:
1. Fetching the transaction receipt via JSON-RPC
2. Parsing ERC20 Transfer event logs emitted by the chain's token contract
3. Accepting the first transfer to the operator address worth at least the price
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .chains import ChainConfig, ChainRegistry
from .events import decode_transfer_log, normalize_address
from .rpc import RpcClient, parse_status
from .units import to_base_units

logger = logging.getLogger("paygate.verify")

TX_HASH_MIN_LENGTH = 66  # 0x + 64 hex chars

# Error codes (also the client-facing error strings)
BAD_CHAIN = "bad_chain"
BAD_TX_HASH = "bad_txHash"
NOT_FOUND = "not_found"
FAILED_TX = "failed_tx"
NOT_PAID = "not_paid"


@dataclass
class PaymentVerificationResult:
    """Result of verifying a payment transaction."""

    success: bool
    tx_hash: str
    chain: Optional[ChainConfig] = None

    # Populated if success=True
    from_address: Optional[str] = None
    amount: Optional[int] = None  # Base units (e.g. 1000000 for 1 USDT)
    threshold: Optional[int] = None

    # Populated if success=False
    error_code: Optional[str] = None

    @classmethod
    def failure(cls, tx_hash, error_code: str, chain: Optional[ChainConfig] = None):
        return cls(success=False, tx_hash=str(tx_hash), chain=chain, error_code=error_code)


def is_valid_tx_hash(tx_hash) -> bool:
    return (
        isinstance(tx_hash, str)
        and tx_hash.startswith("0x")
        and len(tx_hash) >= TX_HASH_MIN_LENGTH
    )


def find_qualifying_transfer(
    logs: list[dict],
    token_address: str,
    pay_to: str,
    threshold: int,
):
    """Return the first Transfer in ``logs`` that pays ``pay_to`` at least ``threshold``.

    Only logs emitted by ``token_address`` are considered; anything that does
    not decode as a Transfer is skipped.
    """
    token_address = normalize_address(token_address)
    pay_to = normalize_address(pay_to)
    for log in logs:
        if normalize_address(log.get("address")) != token_address:
            continue
        event = decode_transfer_log(log)
        if event is None:
            continue
        if event.to_address == pay_to and event.value >= threshold:
            return event
    return None


async def verify_payment(
    tx_hash,
    chain_key,
    registry: ChainRegistry,
    pay_to: str,
    price_units: str,
    rpc: Optional[RpcClient] = None,
) -> PaymentVerificationResult:
    """Verify that ``tx_hash`` on ``chain_key`` paid the operator.

    Args:
        tx_hash: Transaction hash supplied by the client
        chain_key: Chain selector supplied by the client
        registry: Configured payment chains
        pay_to: Operator payout address
        price_units: Price in human units (e.g. "1.5"), converted per chain
        rpc: Client to use instead of a fresh one for the chain's endpoint

    Returns:
        PaymentVerificationResult; on failure ``error_code`` is one of
        bad_chain, bad_txHash, not_found, failed_tx, not_paid.

    Raises:
        RpcError, httpx.HTTPError: If the RPC node cannot be queried
    """
    chain = registry.lookup(chain_key)
    if chain is None:
        return PaymentVerificationResult.failure(tx_hash, BAD_CHAIN)

    if not is_valid_tx_hash(tx_hash):
        return PaymentVerificationResult.failure(tx_hash, BAD_TX_HASH, chain)

    if rpc is None:
        async with RpcClient(chain.rpc_url) as client:
            receipt = await client.get_transaction_receipt(tx_hash)
    else:
        receipt = await rpc.get_transaction_receipt(tx_hash)

    if not receipt:
        return PaymentVerificationResult.failure(tx_hash, NOT_FOUND, chain)

    if parse_status(receipt) != 1:
        return PaymentVerificationResult.failure(tx_hash, FAILED_TX, chain)

    threshold = to_base_units(price_units, chain.token.decimals)
    transfer = find_qualifying_transfer(
        receipt.get("logs") or [],
        token_address=chain.token.address,
        pay_to=pay_to,
        threshold=threshold,
    )
    if transfer is None:
        logger.debug(
            f"No qualifying transfer in {tx_hash} on {chain.key} "
            f"({len(receipt.get('logs') or [])} logs, threshold={threshold})"
        )
        result = PaymentVerificationResult.failure(tx_hash, NOT_PAID, chain)
        result.threshold = threshold
        return result

    return PaymentVerificationResult(
        success=True,
        tx_hash=tx_hash,
        chain=chain,
        from_address=transfer.from_address,
        amount=transfer.value,
        threshold=threshold,
    )
