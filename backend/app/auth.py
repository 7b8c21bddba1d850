"""Payment credentials: issuing and validating the bearer JWT."""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import Settings, get_settings
from .errors import ApiError
from .payments.verification import PaymentVerificationResult

CREDENTIAL_SCOPE = "pro"
CREDENTIAL_LIFETIME = timedelta(days=30)

# Missing/non-bearer headers are reported as missing_token by us, not by FastAPI
security = HTTPBearer(auto_error=False)


def create_access_token(
    result: PaymentVerificationResult,
    settings: Settings,
    now: datetime | None = None,
) -> str:
    """Create a credential for a successful payment verification.

    Every call mints a new, independent credential; the same transaction
    can be redeemed more than once.
    """
    if not result.success or result.chain is None or result.amount is None:
        raise ValueError("Credentials are only issued for successful verifications")

    issued_at = now or datetime.now(timezone.utc)
    to_encode = {
        "scope": CREDENTIAL_SCOPE,
        "txHash": result.tx_hash,
        "chain": result.chain.key,
        "token": result.chain.token.symbol,
        "amount": str(result.amount),
        "iat": issued_at,
        "exp": issued_at + CREDENTIAL_LIFETIME,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and validate a credential (signature and expiry)."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise ApiError("bad_token", headers={"WWW-Authenticate": "Bearer"})


async def get_current_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
    request: Request,
) -> dict:
    """Validate the bearer credential and attach its claims to the request."""
    if not credentials or not credentials.credentials:
        raise ApiError("missing_token", headers={"WWW-Authenticate": "Bearer"})

    claims = decode_token(credentials.credentials, settings)
    request.state.claims = claims
    return claims


# Type alias for dependency injection
CurrentClaims = Annotated[dict, Depends(get_current_claims)]
