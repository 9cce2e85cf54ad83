"""Admin REST API. Every route requires the admin role."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_admin.application.schemas import FlagTransactionRequest, ModerateSongRequest
from src.hv_admin.application.service import AdminService
from src.hv_common.database import get_db_session
from src.hv_common.enums import AuditAction
from src.hv_common.response import ApiResponse, success_response
from src.hv_gateway.auth.dependencies import build_context, require_admin
from src.hv_gateway.user.db_models import UserModel

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.get("/top-ups/pending")
async def list_pending_top_ups(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _service.list_pending_top_ups(db, limit)
    return success_response(data.model_dump(), request)


@router.post("/top-ups/{transaction_id}/verify")
async def verify_top_up(
    transaction_id: str,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.verify_top_up(db, build_context(request, admin), transaction_id)
    resp = success_response(data.model_dump(), request)
    if not data.credited:
        resp.message = "Top-up was already verified"
    return resp


@router.post("/top-ups/{transaction_id}/reject")
async def reject_top_up(
    transaction_id: str,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.reject_top_up(db, build_context(request, admin), transaction_id)
    resp = success_response({"transaction_id": transaction_id}, request)
    resp.message = "Top-up rejected"
    return resp


@router.get("/songs/pending")
async def list_pending_songs(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _service.list_pending_songs(db, limit)
    return success_response(data.model_dump(), request)


@router.post("/songs/{song_id}/moderate")
async def moderate_song(
    song_id: str,
    body: ModerateSongRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.moderate_song(
        db, build_context(request, admin), song_id, body.approve, body.notes
    )
    return success_response(data.model_dump(), request)


@router.post("/transactions/{transaction_id}/flag")
async def flag_transaction(
    transaction_id: str,
    body: FlagTransactionRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.flag_transaction(
        db, build_context(request, admin), transaction_id, body.flagged, body.reason
    )
    return success_response(data.model_dump(), request)


@router.get("/audit-logs")
async def list_audit_logs(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    action_type: AuditAction | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    data = await _service.list_audit_logs(
        db, limit, action_type.value if action_type else None
    )
    return success_response(data.model_dump(), request)
