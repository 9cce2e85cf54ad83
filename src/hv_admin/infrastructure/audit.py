"""AuditRepository — one audit_logs row per admin action.

Written in the same DB transaction as the action it describes, so an
action never commits without its audit row (and vice versa).
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_common.errors import InternalError

_AUDIT_COLUMNS = "id, user_id, admin_user_id, action_type, details, ip_address, timestamp"

_INSERT_AUDIT_SQL = text(f"""
    INSERT INTO audit_logs (user_id, admin_user_id, action_type, details, ip_address)
    VALUES (:user_id, :admin_user_id, :action_type, CAST(:details AS JSONB), :ip_address)
    RETURNING {_AUDIT_COLUMNS}
""")

_LIST_AUDIT_SQL = text(f"""
    SELECT {_AUDIT_COLUMNS}
    FROM audit_logs
    WHERE (CAST(:action_type AS TEXT) IS NULL OR action_type = CAST(:action_type AS TEXT))
    ORDER BY timestamp DESC, id DESC
    LIMIT :limit
""")


@dataclass
class AuditEntry:
    id: str
    user_id: str | None
    admin_user_id: str | None
    action_type: str
    details: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    timestamp: datetime | None = None


def _row_to_entry(row: Any) -> AuditEntry:
    details = row.details
    if isinstance(details, str):
        details = json.loads(details)
    return AuditEntry(
        id=row.id,
        user_id=row.user_id,
        admin_user_id=row.admin_user_id,
        action_type=row.action_type,
        details=details or {},
        ip_address=row.ip_address,
        timestamp=row.timestamp,
    )


class AuditRepository:
    async def log(
        self,
        db: AsyncSession,
        admin_user_id: str,
        action_type: str,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> AuditEntry:
        result = await db.execute(
            _INSERT_AUDIT_SQL,
            {
                "user_id": user_id,
                "admin_user_id": admin_user_id,
                "action_type": action_type,
                "details": json.dumps(details or {}, default=str),
                "ip_address": ip_address,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Audit insert returned no rows — this should never happen")
        return _row_to_entry(row)

    async def list_recent(
        self, db: AsyncSession, limit: int, action_type: str | None = None
    ) -> list[AuditEntry]:
        result = await db.execute(_LIST_AUDIT_SQL, {"limit": limit, "action_type": action_type})
        return [_row_to_entry(row) for row in result.fetchall()]
