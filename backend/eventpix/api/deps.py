from __future__ import annotations

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer

from eventpix.core.cache import get_store
from eventpix.core.config import settings
from eventpix.core.security import verify_token
from eventpix.core.storage import ObjectStorage, get_storage
from eventpix.db import SessionDep
from eventpix.models import User
from eventpix.services.permissions import AccessResolver, Identity, is_super_admin
from eventpix.services.versioned_cache import VersionedCache

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False
)


async def get_current_user_optional(
    session: SessionDep,
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[User]:
    """Authenticated user, or None for anonymous guests."""
    if not token:
        return None
    try:
        payload = verify_token(token, token_type="access")
        user_id = UUID(payload.get("sub", ""))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    user = await session.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or missing user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_super_admin(user: User = Depends(get_current_user)) -> User:
    if not is_super_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return user


def get_access_code(
    x_access_code: Optional[str] = Header(default=None),
    code: Optional[str] = Query(default=None, max_length=50),
) -> Optional[str]:
    """Access code from the X-Access-Code header or the ``code`` query parameter."""
    return x_access_code or code


def get_identity(
    user: Optional[User] = Depends(get_current_user_optional),
    access_code: Optional[str] = Depends(get_access_code),
) -> Identity:
    return Identity.from_user(user, access_code)


def get_cache() -> VersionedCache:
    return VersionedCache(get_store())


def get_resolver(session: SessionDep) -> AccessResolver:
    return AccessResolver(session)


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_super_admin)]
IdentityDep = Annotated[Identity, Depends(get_identity)]
CacheDep = Annotated[VersionedCache, Depends(get_cache)]
ResolverDep = Annotated[AccessResolver, Depends(get_resolver)]
StorageDep = Annotated[ObjectStorage, Depends(get_storage)]
