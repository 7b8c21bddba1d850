"""Payment routes: public configuration and transaction verification."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from ..auth import create_access_token
from ..config import Settings, get_chain_registry, get_settings
from ..errors import ApiError
from ..logging_config import get_logger, log_verification
from ..payments.chains import ChainRegistry
from ..payments.verification import verify_payment
from ..rate_limit import limiter, verify_rate_limit

logger = get_logger("paygate.verify")
router = APIRouter(tags=["payments"])

Registry = Annotated[ChainRegistry, Depends(get_chain_registry)]


class TokenInfo(BaseModel):
    symbol: str
    decimals: int
    address: str


class ChainInfo(BaseModel):
    key: str
    name: str
    token: TokenInfo


class ConfigResponse(BaseModel):
    """What a client needs to build a payment transaction."""
    payTo: str
    priceUnits: str
    chains: list[ChainInfo]


class VerifyRequest(BaseModel):
    """Transaction to verify. Types are checked by the handler, not the schema."""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: Any = Field(None, alias="txHash")
    chain: Any = None


class VerifyResponse(BaseModel):
    ok: bool = True
    token: str


@router.get("/config", response_model=ConfigResponse)
async def get_config(
    settings: Annotated[Settings, Depends(get_settings)],
    registry: Registry,
):
    """Payout address, price and the chains a payment can be made on."""
    return {
        "payTo": settings.pay_to,
        "priceUnits": settings.price_units,
        "chains": [chain.to_public_dict() for chain in registry.entries()],
    }


@router.post("/verify", response_model=VerifyResponse)
@limiter.limit(verify_rate_limit)
async def verify(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    registry: Registry,
    payload: Annotated[Any, Body()] = None,
):
    """
    Verify an on-chain payment and issue an access credential.

    The transaction must be mined, successful, and contain a Transfer of the
    chain's payment token to the operator address worth at least the price.
    Verifying the same transaction again issues another credential.

    A missing body, or one that is not a JSON object, carries no chain and is
    answered with ``bad_chain``. On top of the payment outcomes this endpoint
    is rate limited per client IP (``VERIFY_RATE_LIMIT``); excess requests get
    ``429 rate_limited``.
    """
    body = VerifyRequest.model_validate(payload) if isinstance(payload, dict) else VerifyRequest()
    try:
        result = await verify_payment(
            body.tx_hash,
            body.chain,
            registry=registry,
            pay_to=settings.pay_to,
            price_units=settings.price_units,
        )
    except Exception:
        logger.exception(f"Verification failed for {body.tx_hash!r} on {body.chain!r}")
        log_verification(str(body.chain), str(body.tx_hash), "server_error")
        raise ApiError("server_error")

    chain_key = result.chain.key if result.chain else str(body.chain)
    if not result.success:
        log_verification(chain_key, result.tx_hash, result.error_code)
        raise ApiError(result.error_code)

    token = create_access_token(result, settings)
    log_verification(chain_key, result.tx_hash, "ok", amount=result.amount)
    return {"ok": True, "token": token}
