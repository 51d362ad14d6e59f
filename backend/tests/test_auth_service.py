"""
Project Gallery Backend — Login Service Tests
===============================================

What we test:
    ✅ Passwords are stored as argon2 hashes, never in plain text
    ✅ Correct credentials log in; wrong password and unknown user do not
    ✅ Duplicate usernames are rejected
    ✅ ensure_user() is idempotent
"""

import pytest
from sqlalchemy import func, select

from app.exceptions import AuthenticationError, ValidationError
from app.models.user import User
from app.services.auth_service import AuthService


class TestAuthService:
    @pytest.fixture(autouse=True)
    def _service(self, test_settings):
        self.service = AuthService(test_settings)

    def test_hash_is_argon2(self):
        """Passwords are hashed with argon2 and verify correctly."""
        hashed = self.service.hash_password("s3cret")
        assert hashed.startswith("$argon2")
        assert "s3cret" not in hashed
        assert self.service.verify_password("s3cret", hashed)
        assert not self.service.verify_password("wrong", hashed)

    def test_malformed_hash_does_not_verify(self):
        """A non-argon2 stored value never verifies."""
        assert not self.service.verify_password("s3cret", "plain-text-password")

    @pytest.mark.asyncio
    async def test_login_success(self, db_session):
        """Correct credentials return the user's id and name."""
        user = await self.service.create_user(db_session, "admin", "s3cret")

        response = await self.service.authenticate(db_session, "admin", "s3cret")

        assert response.message == "Login successful"
        assert response.user_id == user.id
        assert response.username == "admin"

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session):
        """A wrong password raises AuthenticationError."""
        await self.service.create_user(db_session, "admin", "s3cret")
        with pytest.raises(AuthenticationError):
            await self.service.authenticate(db_session, "admin", "guess")

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        """An unknown username raises AuthenticationError."""
        with pytest.raises(AuthenticationError):
            await self.service.authenticate(db_session, "nobody", "s3cret")

    @pytest.mark.asyncio
    async def test_duplicate_username(self, db_session):
        """A taken username is a ValidationError."""
        await self.service.create_user(db_session, "admin", "s3cret")
        with pytest.raises(ValidationError, match="already exists"):
            await self.service.create_user(db_session, "admin", "other")

    @pytest.mark.asyncio
    async def test_blank_credentials(self, db_session):
        """A blank username is a ValidationError."""
        with pytest.raises(ValidationError):
            await self.service.create_user(db_session, "  ", "s3cret")

    @pytest.mark.asyncio
    async def test_ensure_user_is_idempotent(self, db_session):
        """ensure_user() never creates a second account or changes the password."""
        await self.service.ensure_user(db_session, "admin", "s3cret")
        await self.service.ensure_user(db_session, "admin", "changed")

        total = (await db_session.execute(select(func.count()).select_from(User))).scalar_one()
        assert total == 1
        # The first password stays in effect
        await self.service.authenticate(db_session, "admin", "s3cret")
