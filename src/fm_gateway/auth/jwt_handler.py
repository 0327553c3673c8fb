"""JWT access-token verification.

Tokens are issued by the external auth service (HS256, shared JWT_SECRET).
This core never issues tokens; it only verifies them and reads the claims
it needs to build a CallerContext:

    {"sub": "<user_id>", "type": "access", "role": "shipper|driver|admin",
     "org_id": "<org_id or null>", "exp": ...}
"""

from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.fm_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature invalid, token expired, or the
            token is not an access token (refresh tokens are rejected).
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    return payload
