"""JWT issue/verify (HS256, shared JWT_SECRET).

Tokens carry the user id in ``sub`` and the role in ``role``. The role claim
is informational only: authorization always re-reads the user row, so a
demoted artist loses access as soon as the row changes.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.hv_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_EXPIRE = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def _encode(user_id: str, token_type: str, ttl: timedelta, role: str | None) -> str:
    now = datetime.now(UTC)
    payload: dict[str, object] = {
        "sub": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + ttl,
    }
    if role is not None:
        payload["role"] = role
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(user_id: str, role: str | None = None) -> str:
    return _encode(user_id, "access", _ACCESS_EXPIRE, role)


def create_refresh_token(user_id: str) -> str:
    """Refresh tokens are not rotated on use."""
    return _encode(user_id, "refresh", _REFRESH_EXPIRE, None)


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a token, enforcing its ``type`` claim.

    Raises:
        InvalidCredentialsError: bad/expired token when expected_type="access".
        InvalidRefreshTokenError: bad/expired token when expected_type="refresh".
    """
    payload: dict[str, str] = {}
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        _raise_auth_error(expected_type)

    if payload.get("type") != expected_type:
        _raise_auth_error(expected_type)

    return payload


def _raise_auth_error(expected_type: str) -> None:
    if expected_type == "access":
        raise InvalidCredentialsError()
    raise InvalidRefreshTokenError()
