"""hv_ledger REST API — top-up submission, bundle list, transaction history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_common.database import get_db_session
from src.hv_common.enums import TransactionType
from src.hv_common.response import ApiResponse, success_response
from src.hv_gateway.auth.dependencies import build_context, get_current_user
from src.hv_gateway.user.db_models import UserModel
from src.hv_ledger.application.schemas import TopUpRequest
from src.hv_ledger.application.service import LedgerApplicationService

router = APIRouter(prefix="/credits", tags=["credits"])

_service = LedgerApplicationService()


@router.get("/bundles")
async def list_bundles(request: Request) -> ApiResponse:
    return success_response(_service.list_bundles().model_dump(), request)


@router.post("/top-ups", status_code=status.HTTP_201_CREATED)
async def submit_top_up(
    body: TopUpRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    ctx = build_context(request, current_user)
    data = await _service.submit_top_up(db, ctx, body)
    resp = success_response(data.model_dump(), request)
    resp.message = "Top-up submitted, credits are added once an admin verifies the payment"
    return resp


@router.get("/transactions")
async def list_transactions(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    transaction_type: TransactionType | None = Query(None, description="Filter by type"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Opaque pagination cursor"),
) -> ApiResponse:
    data = await _service.list_transactions(
        db,
        str(current_user.id),
        cursor,
        limit,
        transaction_type.value if transaction_type else None,
    )
    return success_response(data.model_dump(), request)
