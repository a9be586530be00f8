"""
JWT identity provider for chat clients.

Tokens are issued elsewhere and signed with the shared JWT_SECRET. This
module only verifies them and turns the "sub" claim into a user id.

Token sources, in order:
- Authorization: Bearer <token> header
- ?token=<token> query parameter (browsers cannot set WebSocket headers)
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from jose import jwt, JWTError
from starlette.requests import HTTPConnection

from chatrelay.core.config import settings
from chatrelay.core.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "
TOKEN_QUERY_PARAM = "token"


def extract_token(connection: HTTPConnection) -> Optional[str]:
    """Pull a raw bearer token off an HTTP request or WebSocket handshake."""
    authorization = connection.headers.get("authorization", "")
    if authorization.lower().startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX):].strip()
        if token:
            return token

    token = connection.query_params.get(TOKEN_QUERY_PARAM)
    return token or None


def verify_token(token: str) -> Optional[str]:
    """
    Verify a token's signature and expiry and return its subject.

    Returns None when the token is invalid, expired, or carries no
    string "sub" claim.
    """
    if not settings.JWT_SECRET:
        logger.warning("JWT_SECRET is not configured, rejecting token")
        return None

    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Token rejected: {e}")
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        logger.info("Token rejected: missing subject claim")
        return None
    return subject


def resolve_identity(connection: HTTPConnection) -> Optional[str]:
    """Identity of the client behind a request, or None if it has none."""
    token = extract_token(connection)
    if token is None:
        return None
    return verify_token(token)


def create_access_token(subject: str, expires_in: int = 3600, extra_claims: Optional[Dict[str, Any]] = None) -> str:
    """Mint a signed token for a subject."""
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not configured")

    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = dict(extra_claims or {})
    claims.update({
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    })
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def get_current_user_id(request: Request) -> str:
    """
    Get the authenticated user id of a request.
    Use as dependency for protected endpoints.
    """
    user_id = resolve_identity(request)
    if user_id is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated")
    return user_id
