"""FastAPI dependencies: authentication, role guards and RequestContext.

Usage in any protected router:
    from src.hv_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hv_common.context import RequestContext
from src.hv_common.database import get_db_session
from src.hv_common.enums import UserRole
from src.hv_common.errors import (
    AccountDisabledError,
    InvalidCredentialsError,
    PermissionDeniedError,
)
from src.hv_gateway.auth.jwt_handler import decode_token
from src.hv_gateway.user.db_models import UserModel

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)

DEVICE_FINGERPRINT_HEADER = "X-Device-Fingerprint"


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Validate the Bearer token and return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    Raises AccountDisabledError (403) if the user account is disabled.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def require_artist(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Artists upload songs and read earnings. Admins pass too."""
    if current_user.role not in (UserRole.ARTIST.value, UserRole.ADMIN.value):
        raise PermissionDeniedError(UserRole.ARTIST.value)
    return current_user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    if current_user.role != UserRole.ADMIN.value:
        raise PermissionDeniedError(UserRole.ADMIN.value)
    return current_user


def client_ip(request: Request) -> str | None:
    """Socket peer, or the first X-Forwarded-For hop when the peer is a trusted proxy."""
    peer = request.client.host if request.client else None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and peer is not None and peer in settings.trusted_proxy_ips_set:
        return forwarded.split(",")[0].strip() or peer
    return peer


def build_context(request: Request, user: UserModel) -> RequestContext:
    return RequestContext(
        user_id=str(user.id),
        role=UserRole(user.role),
        ip_address=client_ip(request),
        device_fingerprint=request.headers.get(DEVICE_FINGERPRINT_HEADER),
        request_id=getattr(request.state, "request_id", None),
    )
