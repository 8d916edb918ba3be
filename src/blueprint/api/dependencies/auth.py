"""Authentication dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from src.blueprint.core.logging import bind_user_context
from src.blueprint.core.security import Principal, principal_from_token


async def get_current_principal(
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Validate the bearer access token and return the caller.

    Users are managed by another service; the token is trusted as long as
    its signature, expiry and claims check out.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
        )

    principal = principal_from_token(authorization[7:])
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    bind_user_context(principal.user_id)
    return principal


CurrentUser = Annotated[Principal, Depends(get_current_principal)]
