from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt

from app.core.errors import AuthenticationError
from app.core.security import decode_jwt


bearer = HTTPBearer(auto_error=False)


def current_user_id(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> int:
    """
    Authenticate with a Bearer session token and return the user id it carries.
    Signature and expiry are the only checks; there is no server-side session.
    """
    if not creds or creds.scheme.lower() != "bearer":
        raise AuthenticationError("Missing or invalid Authorization header")

    try:
        payload = decode_jwt(creds.credentials)
    except jwt.PyJWTError:
        # invalid signature, expired, malformed, etc.
        raise AuthenticationError("Invalid or expired token")

    sub = payload.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")
