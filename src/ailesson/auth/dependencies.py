"""FastAPI authentication and role-gate dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.auth.jwt import verify_token
from ailesson.auth.service import get_account_by_id
from ailesson.database import get_session
from ailesson.db.models import Account
from ailesson.economy.pricing import Role

_bearer = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Account:
    """
    Extract and verify the bearer JWT, return the Account.

    Raises 401 when the token is invalid or the account no longer exists.
    """
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    account = await get_account_by_id(db, int(payload["sub"]))
    if account is None:
        raise HTTPException(status_code=401, detail="User not found")
    return account


def require_roles(*roles: Role) -> Callable[..., Awaitable[Account]]:
    """Dependency factory: the caller's role (as stored, not as claimed) must be one of ``roles``."""
    allowed = {r.value for r in roles}

    async def _check(account: Account = Depends(get_current_user)) -> Account:
        if account.role not in allowed:
            raise HTTPException(status_code=403, detail="Not permitted for your role")
        return account

    return _check


require_admin = require_roles(Role.ADMINISTRATOR)
