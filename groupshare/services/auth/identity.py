"""
Caller identity for protected routes.

The identity provider issues the session JWT; this module only verifies it and
resolves one CallerContext (token subject + local UserProfile) per request.
There is no fallback between clients or credentials.
"""
import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from groupshare.core.config import settings
from groupshare.core.errors import AuthenticationError
from groupshare.db.session import get_db
from groupshare.models.user_profile import UserProfile
from groupshare.services.users.service import UserProfileService

logger = logging.getLogger("auth")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class TokenClaims:
    subject: str
    email: str | None
    name: str | None
    raw_claims: dict


@dataclass
class CallerContext:
    external_id: str
    profile: UserProfile

    @property
    def user_id(self) -> str:
        return self.profile.id


def decode_session_token(token: str) -> TokenClaims:
    options = {"require": ["sub", "exp"]}
    kwargs = {}
    if settings.identity_jwt_audience:
        kwargs["audience"] = settings.identity_jwt_audience
    else:
        options["verify_aud"] = False
    if settings.identity_jwt_issuer:
        kwargs["issuer"] = settings.identity_jwt_issuer
    try:
        claims = jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=[settings.identity_jwt_algorithm],
            options=options,
            **kwargs,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session token expired")
    except jwt.InvalidTokenError as e:
        logger.warning("auth_token_invalid", extra={"error": str(e)})
        raise AuthenticationError("Invalid session token")

    name = claims.get("name")
    if not name and claims.get("first_name"):
        name = f"{claims['first_name']} {claims.get('last_name') or ''}".strip()
    return TokenClaims(
        subject=str(claims["sub"]),
        email=claims.get("email"),
        name=name,
        raw_claims=claims,
    )


def require_caller(
    request: Request,
    authorization: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> CallerContext:
    if not authorization or not authorization.credentials:
        raise AuthenticationError("Unauthorized")
    claims = decode_session_token(authorization.credentials)
    profile = UserProfileService(db).get_or_create(
        claims.subject,
        display_name=claims.name,
        email=claims.email,
    )
    caller = CallerContext(external_id=claims.subject, profile=profile)
    request.state.user_id = caller.user_id
    return caller
