import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt

SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))


class MissingCredential(Exception):
    """No bearer token was presented."""


class InvalidCredential(Exception):
    """The bearer token is malformed, badly signed or expired."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str | None = None


def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """Creates a JWT access token with a UTC expiration (24 hours by default)."""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> dict | None:
    """Decodes and verifies the JWT. Returns payload if valid, None if invalid/expired."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate(authorization: str | None) -> TokenClaims:
    """
    Validates an ``Authorization: Bearer <token>`` header value.

    Raises MissingCredential when no token is present and InvalidCredential
    when the signature, expiry or subject claim does not check out.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise MissingCredential()

    payload = verify_access_token(token)
    if payload is None:
        raise InvalidCredential()

    subject = payload.get("sub")
    if subject is None or subject == "":
        raise InvalidCredential()

    return TokenClaims(user_id=str(subject), email=payload.get("email"))
