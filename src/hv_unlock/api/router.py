"""hv_unlock REST API — unlock, undo and the listener's library."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_common.database import get_db_session
from src.hv_common.response import ApiResponse, success_response
from src.hv_gateway.auth.dependencies import build_context, get_current_user
from src.hv_gateway.user.db_models import UserModel
from src.hv_unlock.application.schemas import UnlockRequest
from src.hv_unlock.application.service import UnlockApplicationService

router = APIRouter(tags=["unlock"])

unlock_service = UnlockApplicationService()


@router.post("/songs/{song_id}/unlock")
async def unlock_song(
    song_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    body: UnlockRequest | None = None,
) -> ApiResponse:
    ctx = build_context(request, current_user)
    use_free_slot = body.use_free_slot if body is not None else False
    data = await unlock_service.unlock(db, ctx, song_id, use_free_slot)
    resp = success_response(data.model_dump(), request)
    if data.status != "unlocked":
        resp.message = "Song already unlocked"
    return resp


@router.post("/songs/{song_id}/undo")
async def undo_unlock(
    song_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    ctx = build_context(request, current_user)
    data = await unlock_service.undo(db, ctx, song_id)
    resp = success_response(data.model_dump(), request)
    resp.message = data.summary()
    return resp


@router.get("/library")
async def get_library(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    data = await unlock_service.get_library(db, str(current_user.id), limit)
    return success_response(data.model_dump(), request)
