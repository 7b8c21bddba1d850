"""Chain registry: which EVM chains accept payment, and in which token.

The default table targets cheap L2s paying in USDT. Operators can replace
it wholesale with ``CHAINS_JSON``; entries are never merged.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TOKEN_SYMBOL = "USDT"
DEFAULT_TOKEN_DECIMALS = 6


class TokenEntry(BaseModel):
    """Token section of a chain entry, as written in ``CHAINS_JSON``."""

    model_config = ConfigDict(extra="ignore")

    symbol: str = DEFAULT_TOKEN_SYMBOL
    decimals: int = Field(DEFAULT_TOKEN_DECIMALS, ge=0)
    address: str = ""

    @field_validator("address")
    @classmethod
    def lowercase_address(cls, v: str) -> str:
        return v.strip().lower()


class ChainEntry(BaseModel):
    """One chain of the configurable table.

    Field names follow the JSON override format (``chainName``, ``rpcUrl``).
    ``rpcUrl`` and ``token.address`` may be left empty; such an entry is
    listed in ``/config`` but cannot be paid on or watched.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    chain_name: str | None = Field(None, alias="chainName")
    rpc_url: str = Field("", alias="rpcUrl")
    token: TokenEntry = Field(default_factory=TokenEntry)


@dataclass(frozen=True)
class TokenConfig:
    symbol: str
    decimals: int
    address: str


@dataclass(frozen=True)
class ChainConfig:
    """Resolved, usable chain configuration."""

    key: str
    name: str
    rpc_url: str
    token: TokenConfig

    def to_public_dict(self) -> dict:
        """Shape used by ``GET /config`` (no RPC endpoint)."""
        return {
            "key": self.key,
            "name": self.name,
            "token": {
                "symbol": self.token.symbol,
                "decimals": self.token.decimals,
                "address": self.token.address,
            },
        }


DEFAULT_CHAINS: dict[str, ChainEntry] = {
    "polygon": ChainEntry(
        chainName="Polygon",
        rpcUrl="https://polygon-bor.publicnode.com",
        token=TokenEntry(address="0xc2132D05D31c914a87C6611C10748AEb04B58e8F"),
    ),
    "arbitrum": ChainEntry(
        chainName="Arbitrum One",
        rpcUrl="https://arbitrum-one.publicnode.com",
        token=TokenEntry(address="0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9"),
    ),
    "optimism": ChainEntry(
        chainName="Optimism",
        rpcUrl="https://optimism.publicnode.com",
        token=TokenEntry(address="0x94b008aa00579c1307b0ef2c499ad98a8ce58e58"),
    ),
    "base": ChainEntry(
        chainName="Base",
        rpcUrl="https://base.publicnode.com",
        token=TokenEntry(address="0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2"),
    ),
}


def _resolve(key: str, entry: ChainEntry) -> ChainConfig:
    return ChainConfig(
        key=key,
        name=entry.chain_name or key,
        rpc_url=entry.rpc_url,
        token=TokenConfig(
            symbol=entry.token.symbol or DEFAULT_TOKEN_SYMBOL,
            decimals=entry.token.decimals,
            address=entry.token.address,
        ),
    )


class ChainRegistry:
    """Read-only lookup table of payment chains, fixed for the process lifetime."""

    def __init__(self, entries: dict[str, ChainEntry]):
        self._chains: dict[str, ChainConfig] = {
            key.lower(): _resolve(key.lower(), entry) for key, entry in entries.items()
        }

    @classmethod
    def from_override(cls, override: dict[str, ChainEntry] | None) -> "ChainRegistry":
        """Build from the operator override, or the defaults when there is none."""
        return cls(DEFAULT_CHAINS if override is None else override)

    def lookup(self, key) -> ChainConfig | None:
        """Return the chain for ``key`` (case-insensitive), or None.

        None also covers entries without an RPC endpoint or token address.
        """
        chain = self._chains.get(str(key or "").lower())
        if chain is None or not chain.rpc_url or not chain.token.address:
            return None
        return chain

    def keys(self) -> list[str]:
        return list(self._chains)

    def entries(self) -> list[ChainConfig]:
        """Every configured entry, including ones that cannot be paid on."""
        return list(self._chains.values())
