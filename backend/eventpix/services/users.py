"""User account lookups and credential checks."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from eventpix.core.security import get_password_hash, verify_password
from eventpix.models import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    statement = select(User).where(User.email == normalize_email(email))
    return (await session.exec(statement)).one_or_none()


async def create_user(
    session: AsyncSession, email: str, password: str, name: Optional[str] = None
) -> User:
    user = User(
        email=normalize_email(email),
        name=name,
        hashed_password=get_password_hash(password),
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> Optional[User]:
    """The user when the password matches, otherwise None. Activity is not checked."""
    user = await get_user_by_email(session, email)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


async def get_active_user(session: AsyncSession, user_id: str) -> Optional[User]:
    """Active user for a token subject; malformed subjects count as unknown."""
    try:
        user = await session.get(User, UUID(user_id))
    except ValueError:
        return None
    return user if user is not None and user.is_active else None
