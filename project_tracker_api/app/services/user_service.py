"""
Business logic for users.

Users are created by the account system; this service only stores and
looks up the fields needed to attribute projects, events and commit
counts to them.
"""

import logging
from typing import Optional

from ..core.db import get_connection
from ..schemas.user import UserCreate, UserRead

logger = logging.getLogger(__name__)


class UserService:
    """Lookup and registration of users."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        """Insert a user and return it."""
        logger.info("Registering user %s", data.email)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO users (email, first_name, last_name) VALUES (?, ?, ?)",
                (data.email, data.first_name, data.last_name),
            )
            user_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        return UserRead(id=user_id, **data.model_dump())

    @classmethod
    async def get_by_email(cls, email: str) -> Optional[UserRead]:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, email, first_name, last_name FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()
        return UserRead.model_validate(dict(row)) if row else None
