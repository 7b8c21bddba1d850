"""Credential introspection."""

from fastapi import APIRouter

from ..auth import CurrentClaims

router = APIRouter(tags=["account"])


@router.get("/me")
async def me(claims: CurrentClaims):
    """Return the decoded claims of the presented credential."""
    return {"ok": True, "payload": claims}
