"""ERC-20 Transfer event decoding.

Transfer event: Transfer(address indexed from, address indexed to, uint256 value)
- topics[0]: event signature
- topics[1]: from address (indexed, padded to 32 bytes)
- topics[2]: to address (indexed, padded to 32 bytes)
- data: value (uint256)
"""

from dataclasses import dataclass
from typing import Optional

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_SIGNATURE = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

_WORD_HEX_LEN = 64


@dataclass(frozen=True)
class TransferEvent:
    """One decoded Transfer log."""

    from_address: str
    to_address: str
    value: int
    contract: str
    tx_hash: Optional[str] = None


def normalize_address(address: Optional[str]) -> str:
    """Normalize an Ethereum address to lowercase with 0x prefix."""
    if not address:
        return ""
    address = address.lower()
    if not address.startswith("0x"):
        address = "0x" + address
    # 32-byte padded address from an event topic
    if len(address) == 66:
        address = "0x" + address[-40:]
    return address


def address_topic(address: str) -> str:
    """Left-pad an address to a 32-byte topic for eth_getLogs filters."""
    return "0x" + normalize_address(address)[2:].rjust(_WORD_HEX_LEN, "0")


def _word(value) -> Optional[str]:
    """Return the 64 hex digits of a 32-byte word, or None if malformed."""
    if not isinstance(value, str):
        return None
    body = value[2:] if value[:2].lower() == "0x" else value
    if len(body) != _WORD_HEX_LEN:
        return None
    try:
        int(body, 16)
    except ValueError:
        return None
    return body.lower()


def decode_transfer_log(log: dict) -> Optional[TransferEvent]:
    """Decode a raw JSON-RPC log as an ERC-20 Transfer.

    Returns None for anything that is not a well-formed Transfer: a
    different event, the ERC-721 four-topic variant, or bad hex.
    """
    if not isinstance(log, dict):
        return None
    topics = log.get("topics") or []
    if not isinstance(topics, list):
        return None
    if len(topics) != 3:
        return None
    if str(topics[0]).lower() != TRANSFER_EVENT_SIGNATURE:
        return None

    from_word = _word(topics[1])
    to_word = _word(topics[2])
    value_word = _word(log.get("data"))
    if from_word is None or to_word is None or value_word is None:
        return None

    return TransferEvent(
        from_address="0x" + from_word[-40:],
        to_address="0x" + to_word[-40:],
        value=int(value_word, 16),
        contract=normalize_address(log.get("address")),
        tx_hash=log.get("transactionHash"),
    )
