"""Unit tests for authentication functions."""
import os
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from jose import jwt

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from reservation_core.auth import (
    authenticate_user,
    create_access_token,
    decode_token,
    email_allowed,
    get_password_hash,
    verify_password,
)
from reservation_core.config import get_settings
from reservation_core.errors import AuthError
from reservation_core.models import RoleEnum, User

settings = get_settings()


class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_password_hash_and_verify(self):
        """Test that password can be hashed and verified."""
        password = "MySecurePassword123!"
        hashed = get_password_hash(password)

        assert hashed != password
        assert verify_password(password, hashed) is True
        assert verify_password("WrongPassword", hashed) is False

    def test_same_password_different_hashes(self):
        """Test that the same password generates different hashes (salt)."""
        hash1 = get_password_hash("user123")
        hash2 = get_password_hash("user123")

        assert hash1 != hash2
        assert verify_password("user123", hash1) is True
        assert verify_password("user123", hash2) is True


class TestJWTTokens:
    """Test JWT token creation and decoding."""

    def test_create_access_token(self):
        """Test JWT token creation with valid data."""
        token = create_access_token({"sub": "admin@alkhidmat.org", "role": "admin"})

        decoded = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert decoded["sub"] == "admin@alkhidmat.org"
        assert decoded["role"] == "admin"
        assert decoded["exp"] > datetime.utcnow().timestamp()

    def test_decode_token_invalid(self):
        """Test decoding an invalid token raises an auth error."""
        with pytest.raises(AuthError) as exc_info:
            decode_token("invalid.token.here")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid token"

    def test_decode_token_expired(self):
        """Test decoding an expired token raises an auth error."""
        token = create_access_token({"sub": "user@alkhidmat.org"}, timedelta(hours=-1))

        with pytest.raises(AuthError):
            decode_token(token)


class TestEmailDomain:
    """Registration is limited to the organizational suffix."""

    def test_allowed_domain(self):
        assert email_allowed("someone@alkhidmat.org") is True
        assert email_allowed("Someone@ALKHIDMAT.ORG") is True

    def test_other_domains_rejected(self):
        assert email_allowed("someone@gmail.com") is False
        assert email_allowed("someone@alkhidmat.org.evil.com") is False


class TestUserAuthentication:
    """Test user authentication logic."""

    def _user(self, password: str) -> User:
        return User(
            user_id=1,
            full_name="Test User",
            email="test@alkhidmat.org",
            role=RoleEnum.USER,
            hashed_password=get_password_hash(password),
        )

    def test_authenticate_user_success(self):
        """Test successful user authentication."""
        mock_db = MagicMock()
        mock_db.query.return_value.filter.return_value.first.return_value = self._user("TestPass123")

        result = authenticate_user(mock_db, "test@alkhidmat.org", "TestPass123")

        assert result is not None
        assert result.user_id == 1

    def test_authenticate_user_wrong_password(self):
        """Test authentication fails with wrong password."""
        mock_db = MagicMock()
        mock_db.query.return_value.filter.return_value.first.return_value = self._user("CorrectPassword")

        assert authenticate_user(mock_db, "test@alkhidmat.org", "WrongPassword") is None

    def test_authenticate_user_not_found(self):
        """Test authentication fails when user doesn't exist."""
        mock_db = MagicMock()
        mock_db.query.return_value.filter.return_value.first.return_value = None

        assert authenticate_user(mock_db, "nobody@alkhidmat.org", "anypassword") is None
