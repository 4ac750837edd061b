"""Authentication router: /api/v1/auth/*."""

from __future__ import annotations

import jwt
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.auth.dependencies import get_current_user
from ailesson.auth.jwt import create_access_token, create_refresh_token, verify_token
from ailesson.auth.schemas import (
    AccountResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from ailesson.auth.service import authenticate, get_account_by_id, register_account
from ailesson.config import get_settings
from ailesson.database import get_session
from ailesson.db.models import Account

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def account_response(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        email=account.email,
        name=account.name,
        role=account.role,
        wisdom_coins=account.wisdom_coins,
        selected_expert_id=account.selected_expert_id,
        created_at=account.created_at,
        last_login=account.last_login,
    )


def _issue_tokens(account: Account) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(account.id, account.role),
        refresh_token=create_refresh_token(account.id, account.role),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=account_response(account),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_session)) -> TokenResponse:
    """Create an account; the registration grant is paid atomically."""
    account = await register_account(db, body.email, body.password, body.name, body.role)
    return _issue_tokens(account)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_session)) -> TokenResponse:
    account = await authenticate(db, body.email, body.password)
    return _issue_tokens(account)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_session)) -> TokenResponse:
    """Exchange a refresh token for a new token pair carrying the current role."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    account = await get_account_by_id(db, int(payload["sub"]))
    if account is None:
        raise HTTPException(status_code=401, detail="User not found")
    return _issue_tokens(account)


@router.get("/me", response_model=AccountResponse)
async def me(account: Account = Depends(get_current_user)) -> AccountResponse:
    return account_response(account)
