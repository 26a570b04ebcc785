"""FastAPI dependency injection for authentication."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.scribe.core.security import verify_token


async def get_current_owner(request: Request) -> str:
    """Extract the owner id from a Bearer JWT.

    Raises:
        HTTPException(401): If no valid bearer token is provided.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = verify_token(auth_header[7:], token_type="access")
    return str(payload["sub"])
