"""Tests for session token verification and caller resolution."""
import time
from unittest.mock import MagicMock, patch

import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from groupshare.core.errors import AuthenticationError
from groupshare.models import UserProfile
from groupshare.services.auth.identity import decode_session_token, require_caller


class TestDecodeSessionToken:
    def test_valid_token(self, session_token):
        claims = decode_session_token(session_token("sub-1", email="a@example.com", first_name="Ann", last_name="Lee"))
        assert claims.subject == "sub-1"
        assert claims.email == "a@example.com"
        assert claims.name == "Ann Lee"

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "sub-1", "exp": int(time.time()) + 60}, "another-secret-of-sufficient-length-123", algorithm="HS256")
        with pytest.raises(AuthenticationError) as exc:
            decode_session_token(token)
        assert exc.value.message == "Invalid session token"

    def test_missing_exp(self):
        token = jwt.encode({"sub": "sub-1"}, "test-identity-secret-0123456789abcdef0123", algorithm="HS256")
        with pytest.raises(AuthenticationError):
            decode_session_token(token)

    def test_expired(self, session_token):
        with pytest.raises(AuthenticationError) as exc:
            decode_session_token(session_token("sub-1", expires_in=-10))
        assert exc.value.message == "Session token expired"

    @patch("groupshare.services.auth.identity.settings")
    def test_audience_enforced_when_configured(self, settings, session_token):
        settings.identity_jwt_secret = "test-identity-secret-0123456789abcdef0123"
        settings.identity_jwt_algorithm = "HS256"
        settings.identity_jwt_audience = "groupshare"
        settings.identity_jwt_issuer = None
        with pytest.raises(AuthenticationError):
            decode_session_token(session_token("sub-1", aud="someone-else"))
        assert decode_session_token(session_token("sub-1", aud="groupshare")).subject == "sub-1"


class TestRequireCaller:
    def test_missing_credentials(self, db):
        with pytest.raises(AuthenticationError):
            require_caller(MagicMock(), None, db)

    def test_resolves_single_profile(self, db, session_token):
        request = MagicMock()
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=session_token("sub-7"))

        first = require_caller(request, credentials, db)
        second = require_caller(request, credentials, db)

        assert first.user_id == second.user_id
        assert first.external_id == "sub-7"
        assert request.state.user_id == first.user_id
        assert db.query(UserProfile).filter(UserProfile.external_auth_id == "sub-7").count() == 1
