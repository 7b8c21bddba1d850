"""On-chain payment verification for the API gate."""

from .chains import DEFAULT_CHAINS, ChainConfig, ChainEntry, ChainRegistry
from .rpc import RpcClient, RpcError
from .units import to_base_units
from .verification import PaymentVerificationResult, verify_payment

__all__ = [
    "verify_payment",
    "PaymentVerificationResult",
    "RpcClient",
    "RpcError",
    "ChainRegistry",
    "ChainConfig",
    "ChainEntry",
    "DEFAULT_CHAINS",
    "to_base_units",
]
