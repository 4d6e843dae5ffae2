from datetime import datetime, timedelta, timezone
import secrets
import jwt
from passlib.context import CryptContext
from app.core.config import settings
from datetime import timezone as _tz, datetime as _dt

ALGO = "HS256"

_pwd_ctx = None
_pwd_rounds = None


def _ctx() -> CryptContext:
    # rebuilt when settings.bcrypt_rounds changes (tests lower it)
    global _pwd_ctx, _pwd_rounds
    if _pwd_ctx is None or _pwd_rounds != settings.bcrypt_rounds:
        _pwd_ctx = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.bcrypt_rounds,
        )
        _pwd_rounds = settings.bcrypt_rounds
    return _pwd_ctx


def ensure_aware(dt: _dt) -> _dt:
    """Return a timezone-aware UTC datetime. If naive, assume UTC."""
    if dt is None:
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=_tz.utc)

def hash_password(p: str) -> str:
    return _ctx().hash(p)

def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time comparison of ``plain`` against a stored bcrypt hash.

    Malformed or empty hashes count as a mismatch.
    """
    if not hashed:
        return False
    try:
        return _ctx().verify(plain, hashed)
    except (ValueError, TypeError):
        return False

def dummy_verify() -> None:
    """Burn one hash comparison so unknown-account logins cost the same as real ones."""
    _ctx().dummy_verify()

def now_utc():
    return datetime.now(timezone.utc)

def make_access_token(user_id: int, email: str) -> str:
    issued = now_utc()
    payload = {
        "iss": settings.jwt_issuer,
        "sub": str(user_id),
        "email": email,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=settings.access_ttl_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)

def decode_jwt(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[ALGO], issuer=settings.jwt_issuer)

def generate_otp(digits: int = 6) -> str:
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"

def random_token(n_bytes: int = 32) -> str:
    return secrets.token_hex(n_bytes)
