"""
Project Gallery Backend — Login Service
=========================================

What:  Username/password check for the admin frontend.
How:   Passwords are stored as Argon2id hashes (salted, parameters from
       settings) and verified with argon2-cffi. Unknown users and wrong
       passwords produce the same AuthenticationError.
Who:   POST /login, and the startup bootstrap of ADMIN_USERNAME.

No tokens or sessions are issued; the response only identifies the user.
"""

import logging

import argon2
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.exceptions import AuthenticationError, ValidationError, database_failure
from app.models.user import User
from app.schemas.auth import LoginResponse

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, settings: Settings):
        self._hasher = argon2.PasswordHasher(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )

    def hash_password(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify_password(self, password: str, hashed: str) -> bool:
        """Returns False on mismatch or on a malformed stored hash."""
        try:
            return self._hasher.verify(hashed, password)
        except argon2.exceptions.VerifyMismatchError:
            return False
        except argon2.exceptions.InvalidHashError:
            logger.warning("Stored password hash is not a valid argon2 hash")
            return False

    async def _find(self, db: AsyncSession, username: str) -> User | None:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def create_user(self, db: AsyncSession, username: str, password: str) -> User:
        """
        Raises:
            ValidationError: blank username/password or username taken
        """
        if not username.strip() or not password:
            raise ValidationError(message="Username and password are required")
        user = User(username=username.strip(), password_hash=self.hash_password(password))
        try:
            db.add(user)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValidationError(message=f"Username '{username}' already exists", field="username")
        except SQLAlchemyError as e:
            await db.rollback()
            raise database_failure("create the user", e)
        logger.info("User %s created (id=%s)", user.username, user.id)
        return user

    async def ensure_user(self, db: AsyncSession, username: str, password: str) -> None:
        """Create the account unless a user with that name already exists."""
        if await self._find(db, username) is None:
            await self.create_user(db, username, password)

    async def authenticate(self, db: AsyncSession, username: str, password: str) -> LoginResponse:
        try:
            user = await self._find(db, username)
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e))
            raise database_failure("log in", e)

        if user is None or not self.verify_password(password, user.password_hash):
            logger.warning("Failed login for username=%s", username)
            raise AuthenticationError()

        if self._hasher.check_needs_rehash(user.password_hash):
            user.password_hash = self.hash_password(password)

        logger.info("User %s logged in", user.username)
        return LoginResponse(message="Login successful", user_id=user.id, username=user.username)
