"""Explicit caller context passed into every engine call.

Built by the router layer from the authenticated user and the request; the
core trusts it and never looks up a "current user" on its own.
"""

from dataclasses import dataclass

from src.hv_common.enums import UserRole


@dataclass(frozen=True)
class RequestContext:
    user_id: str
    role: UserRole = UserRole.LISTENER
    ip_address: str | None = None
    device_fingerprint: str | None = None
    request_id: str | None = None
