"""Authentication helpers for API routes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import Database
from app.models import AuthToken, User


@dataclass(frozen=True)
class UserContext:
    """Identity resolved from a bearer token."""

    user_id: str
    email: str


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def get_current_user_dependency(database: Database) -> Callable[..., Awaitable[UserContext]]:
    async def get_current_user(
        authorization: str | None = Header(default=None),
        session: AsyncSession = Depends(database.get_session),
    ) -> UserContext:
        token_value = _bearer_token(authorization)
        if token_value is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
        now = datetime.now(timezone.utc)
        stmt: Select[tuple[AuthToken]] = select(AuthToken).where(
            AuthToken.token == token_value,
            AuthToken.is_active.is_(True),
            AuthToken.expires_at > now,
        )
        result = await session.execute(stmt)
        auth_token = result.scalar_one_or_none()
        if auth_token is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
        user = await session.get(User, auth_token.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
        return UserContext(user_id=user.id, email=user.email)

    return get_current_user


def require_cron_secret(secret: str | None) -> Callable[..., Awaitable[None]]:
    """Dependency accepting only ``Authorization: Bearer <secret>``."""

    async def check(authorization: str | None = Header(default=None)) -> None:
        if not secret or _bearer_token(authorization) != secret:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return check


__all__ = ["UserContext", "get_current_user_dependency", "require_cron_secret"]
