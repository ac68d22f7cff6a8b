"""Bearer-token authentication for the user-data routes.

Tokens are HS256 JWTs signed with ``JWT_SECRET``. The account id travels in a
``userId`` claim (``sub`` is accepted as well) and ``exp`` is mandatory.
Token issuance and password checks happen outside this service; this module
only verifies what it is handed and resolves it to a stored :class:`User`.
"""

from typing import Any, Dict, Optional

import jwt
from fastapi import Header, Request

from stocknews.core.database import UserRepository
from stocknews.core.errors import AuthenticationFailure
from stocknews.core.logger import logger
from stocknews.models.datatypes import User

JWT_ALGORITHM = "HS256"


def decode_token(token: str, secret: str) -> Dict[str, Any]:
    """Verify signature and expiry; return the claims."""
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError as exc:
        logger.info(f"Rejected bearer token: {exc}")
        raise AuthenticationFailure("Invalid or expired token") from exc


def _user_id_from_claims(claims: Dict[str, Any]) -> int:
    raw = claims.get("userId", claims.get("sub"))
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise AuthenticationFailure("Token does not identify a user") from exc


def get_current_user(request: Request, authorization: Optional[str] = Header(None)) -> User:
    """FastAPI dependency: resolve ``Authorization: Bearer <jwt>`` to a stored user."""
    secret = request.app.state.settings.jwt_secret
    if not secret:
        raise AuthenticationFailure("Authentication is not configured")

    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationFailure("No token provided")

    claims = decode_token(authorization[len("Bearer "):].strip(), secret)
    user = UserRepository(request.app.state.database).find_by_id(_user_id_from_claims(claims))
    if user is None:
        raise AuthenticationFailure("Unknown user")
    return user
