from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status

from shared.security import InvalidCredential, MissingCredential, authenticate, credentials_exception

from .dependencies import get_dispatcher
from .dispatcher import ReverseDispatcher
from .routes import SERVICES, match_route

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": list(SERVICES),
    }


@router.api_route("/api/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy(request: Request, dispatcher: ReverseDispatcher = Depends(get_dispatcher)):
    route = match_route(request.url.path)
    if route is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Route not found")

    # Order routes are checked here so unauthenticated traffic never reaches the backend
    if route.auth_required:
        try:
            authenticate(request.headers.get("authorization"))
        except (MissingCredential, InvalidCredential) as e:
            raise credentials_exception(e)

    return await dispatcher.forward(request, route)
