"""API routes."""

from .account import router as account_router
from .payments import router as payments_router
from .tools import router as tools_router

__all__ = [
    "payments_router",
    "account_router",
    "tools_router",
]
