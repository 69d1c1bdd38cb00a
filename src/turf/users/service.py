"""User lookups and creation.

Signup and password handling live outside this service; ``create_user`` is
the entry point for whatever provisions accounts (and for tests).
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from turf.db.models import User
from turf.errors import InputContractError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    display_name: str,
    email: str | None = None,
    color: str = "#888888",
) -> User:
    """
    Create a user.

    Raises:
        InputContractError: If display name, email or color is malformed.
    """
    display_name = display_name.strip()
    if not 3 <= len(display_name) <= 50:
        msg = "Display name must be 3-50 characters"
        raise InputContractError(msg)
    if not _COLOR_RE.match(color):
        msg = "Color must be a valid hex color code (e.g., #FF0000)"
        raise InputContractError(msg)
    if email is not None:
        email = email.strip().lower()
        if not _EMAIL_RE.match(email):
            msg = "Invalid email format"
            raise InputContractError(msg)

    user = User(display_name=display_name, email=email, color=color, is_active=True)
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id)
    return user
