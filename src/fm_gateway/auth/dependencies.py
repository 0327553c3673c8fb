"""FastAPI dependencies: get_caller_context / require_admin.

Usage in any protected router:
    from src.fm_gateway.auth.dependencies import get_caller_context

    @router.get("/protected")
    async def protected(caller: CallerContext = Depends(get_caller_context)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from src.fm_common.enums import UserRole
from src.fm_common.errors import ForbiddenActorError, InvalidCredentialsError
from src.fm_gateway.auth.context import CallerContext
from src.fm_gateway.auth.jwt_handler import decode_access_token

# tokenUrl points at the external auth service (used by Swagger's "Authorize")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_caller_context(token: str = Depends(oauth2_scheme)) -> CallerContext:
    """Verify the Bearer token and build the caller context from its claims.

    Raises HTTP 401 if the token is missing, invalid, expired, or carries
    no subject / an unknown role.
    """
    try:
        payload = decode_access_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise _CREDENTIALS_EXCEPTION from None

    org_id = payload.get("org_id")
    return CallerContext(
        user_id=str(user_id),
        role=role,
        org_id=str(org_id) if org_id else None,
    )


async def require_admin(
    caller: CallerContext = Depends(get_caller_context),
) -> CallerContext:
    """Used to protect benchmark writes and the matching stats view."""
    if not caller.is_admin:
        raise ForbiddenActorError("Admin role required")
    return caller
