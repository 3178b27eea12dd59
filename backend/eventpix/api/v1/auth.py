from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from eventpix.api.deps import CurrentUser
from eventpix.core.security import (
    create_access_token,
    create_refresh_token,
    verify_token,
)
from eventpix.db import SessionDep
from eventpix.models import User
from eventpix.schemas import (
    RefreshTokenRequest,
    TokenPair,
    UserCreate,
    UserLogin,
    UserRead,
)
from eventpix.services.users import (
    authenticate_user,
    create_user,
    get_active_user,
    get_user_by_email,
)

router = APIRouter()


def _token_pair(user_id) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
    )


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register_user(payload: UserCreate, session: SessionDep) -> User:
    if await get_user_by_email(session, payload.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is already registered",
        )
    return await create_user(session, payload.email, payload.password, payload.name)


@router.post("/login", response_model=TokenPair, summary="Login and obtain tokens")
async def login(payload: UserLogin, session: SessionDep) -> TokenPair:
    user = await authenticate_user(session, payload.email, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive"
        )
    return _token_pair(user.id)


@router.post("/refresh", response_model=TokenPair, summary="Refresh access token")
async def refresh_tokens(payload: RefreshTokenRequest, session: SessionDep) -> TokenPair:
    """Deactivated or deleted accounts cannot refresh."""
    try:
        claims = verify_token(payload.refresh_token, token_type="refresh")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        ) from None

    user = await get_active_user(session, claims.get("sub") or "")
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token does not belong to an active user",
        )
    return _token_pair(user.id)


@router.get("/me", response_model=UserRead, summary="Current user")
async def read_me(current_user: CurrentUser) -> User:
    return current_user
