from .jwt_handler import (
    InvalidCredential,
    MissingCredential,
    TokenClaims,
    authenticate,
    create_access_token,
    verify_access_token,
)
from .dependencies import credentials_exception, get_current_user
from .rate_limiter import FixedWindowRateLimiter, RateLimitDecision, client_key

__all__ = [
    "InvalidCredential",
    "MissingCredential",
    "TokenClaims",
    "authenticate",
    "create_access_token",
    "verify_access_token",
    "credentials_exception",
    "get_current_user",
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "client_key",
]
