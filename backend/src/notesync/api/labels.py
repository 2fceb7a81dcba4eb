"""Label API endpoints."""

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.schemas.common import ApiResponse
from ..core.schemas.labels import LabelCreate, LabelResponse, LabelUpdate
from ..core.services import LabelService
from ..database import get_db_session
from ..middleware.auth import require_active_user

router = APIRouter(prefix="/labels", tags=["labels"])


@router.get("/", response_model=ApiResponse[List[LabelResponse]])
async def list_labels(
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    label_service = LabelService(session)
    return ApiResponse.ok(await label_service.list_labels(current_user_id))


@router.post("/", response_model=ApiResponse[LabelResponse], status_code=status.HTTP_201_CREATED)
async def create_label(
    request: LabelCreate,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a label; 409 when the name is already used."""
    label_service = LabelService(session)
    return ApiResponse.ok(await label_service.create_label(current_user_id, request))


@router.put("/{label_id}", response_model=ApiResponse[LabelResponse])
async def update_label(
    label_id: UUID,
    request: LabelUpdate,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    label_service = LabelService(session)
    return ApiResponse.ok(await label_service.update_label(label_id, current_user_id, request))


@router.delete("/{label_id}", response_model=ApiResponse[Dict[str, Any]])
async def delete_label(
    label_id: UUID,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a label and detach it from notes."""
    label_service = LabelService(session)
    await label_service.delete_label(label_id, current_user_id)
    return ApiResponse.ok({})
