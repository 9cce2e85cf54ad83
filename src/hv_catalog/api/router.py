"""hv_catalog REST API — song upload (artists), catalog browse, artist earnings."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_catalog.application.schemas import CreateSongRequest
from src.hv_catalog.application.service import CatalogApplicationService
from src.hv_common.database import get_db_session
from src.hv_common.enums import SongSort
from src.hv_common.response import ApiResponse, success_response
from src.hv_gateway.auth.dependencies import get_current_user, require_artist
from src.hv_gateway.user.db_models import UserModel

router = APIRouter(tags=["catalog"])

_service = CatalogApplicationService()


@router.post("/songs", status_code=status.HTTP_201_CREATED)
async def create_song(
    body: CreateSongRequest,
    artist: Annotated[UserModel, Depends(require_artist)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_song(db, str(artist.id), body)
    resp = success_response(data.model_dump(), request)
    resp.message = "Song submitted for moderation"
    return resp


@router.get("/songs")
async def list_songs(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    genre: str | None = Query(None, description="Filter by genre"),
    search: str | None = Query(None, max_length=100, description="Title/description search"),
    sort: SongSort = Query(SongSort.HEAT, description="heat | newest | price_low | price_high"),
    limit: int = Query(50, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_published(db, genre, search, sort, limit)
    return success_response(data.model_dump(), request)


@router.get("/songs/{song_id}")
async def get_song(
    song_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_song(db, song_id, viewer_id=str(current_user.id))
    return success_response(data.model_dump(), request)


@router.get("/artist/earnings")
async def get_artist_earnings(
    artist: Annotated[UserModel, Depends(require_artist)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_artist_earnings(db, str(artist.id))
    return success_response(data.model_dump(), request)
