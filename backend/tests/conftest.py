"""Pytest configuration and fixtures."""

import os
import secrets

import pytest
from factories import PAY_TO

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

os.environ["PAY_TO"] = PAY_TO
os.environ["JWT_SECRET"] = _TEST_JWT_SECRET
os.environ["PRICE_UNITS"] = "1"
os.environ["REVENUE_WATCHER_ENABLED"] = "false"
os.environ["VERIFY_RATE_LIMIT"] = "1000/minute"
os.environ.pop("CHAINS_JSON", None)

from app.auth import create_access_token  # noqa: E402
from app.config import get_chain_registry, get_settings  # noqa: E402
from app.main import app  # noqa: E402
from app.payments.verification import PaymentVerificationResult  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def registry():
    return get_chain_registry()


@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
def credential(settings, registry):
    """A valid credential for a 1 USDT payment on Base."""
    result = PaymentVerificationResult(
        success=True,
        tx_hash="0x" + "1" * 64,
        chain=registry.lookup("base"),
        amount=1_000_000,
    )
    return create_access_token(result, settings)


@pytest.fixture
def auth_headers(credential):
    """Create auth headers with a test credential."""
    return {"Authorization": f"Bearer {credential}"}
