from fastapi import HTTPException, Header, Request, status

from .jwt_handler import InvalidCredential, MissingCredential, TokenClaims, authenticate


def credentials_exception(error: Exception) -> HTTPException:
    """Maps an Identity Verifier failure onto the matching HTTP error."""
    if isinstance(error, MissingCredential):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Invalid token",
    )


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> TokenClaims:
    """Dependency to validate the bearer JWT and return the caller's claims."""
    try:
        claims = authenticate(authorization)
    except (MissingCredential, InvalidCredential) as e:
        raise credentials_exception(e)

    # Store in request state for downstream use (logging, rate limiting)
    request.state.user_id = claims.user_id
    return claims
