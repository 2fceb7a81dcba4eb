"""Notes API endpoints."""

from typing import Any, Dict, List, Union
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.schemas.common import ApiResponse, PasswordRequiredResponse
from ..core.schemas.notes import (
    NoteCreate,
    NoteResponse,
    NoteSummary,
    NoteUpdate,
    NoteVerifyRequest,
)
from ..core.services import NoteService
from ..database import get_db_session
from ..middleware.auth import require_active_user

router = APIRouter(prefix="/notes", tags=["notes"])

# full note first so complete bodies never validate as the redacted form
NoteView = Union[NoteResponse, NoteSummary]


@router.get("/", response_model=ApiResponse[List[NoteView]])
async def list_notes(
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Notes owned by or shared with the current user, pinned first."""
    note_service = NoteService(session)
    return ApiResponse.ok(await note_service.list_notes(current_user_id))


@router.post("/", response_model=ApiResponse[NoteResponse], status_code=status.HTTP_201_CREATED)
async def create_note(
    request: NoteCreate,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a new note."""
    note_service = NoteService(session)
    return ApiResponse.ok(await note_service.create_note(current_user_id, request))


@router.get(
    "/{note_id}",
    response_model=Union[ApiResponse[NoteResponse], PasswordRequiredResponse[NoteSummary]],
)
async def get_note(
    note_id: UUID,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a note; password protected notes come back without their body.

    The withheld form is still a 200, flagged with a top level
    ``is_password_protected: true`` next to ``success``.
    """
    note_service = NoteService(session)
    note = await note_service.get_note(note_id, current_user_id)
    if isinstance(note, NoteResponse):
        return ApiResponse.ok(note)
    return PasswordRequiredResponse.withheld(note)


@router.post("/{note_id}/verify", response_model=ApiResponse[NoteResponse])
async def verify_note_password(
    note_id: UUID,
    request: NoteVerifyRequest,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the full note by supplying its password; nothing stays unlocked."""
    note_service = NoteService(session)
    return ApiResponse.ok(await note_service.verify_password(note_id, current_user_id, request))


@router.put("/{note_id}", response_model=ApiResponse[NoteView])
async def update_note(
    note_id: UUID,
    request: NoteUpdate,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Update a note (owner or collaborator)."""
    note_service = NoteService(session)
    return ApiResponse.ok(await note_service.update_note(note_id, current_user_id, request))


@router.delete("/{note_id}", response_model=ApiResponse[Dict[str, Any]])
async def delete_note(
    note_id: UUID,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a note (owner only)."""
    note_service = NoteService(session)
    await note_service.delete_note(note_id, current_user_id)
    return ApiResponse.ok({})


@router.put("/{note_id}/collaborators/{user_id}", response_model=ApiResponse[NoteView])
async def add_collaborator(
    note_id: UUID,
    user_id: UUID,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Give a user read/edit access to the note (owner only)."""
    note_service = NoteService(session)
    return ApiResponse.ok(await note_service.add_collaborator(note_id, current_user_id, user_id))


@router.delete("/{note_id}/collaborators/{user_id}", response_model=ApiResponse[NoteView])
async def remove_collaborator(
    note_id: UUID,
    user_id: UUID,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Revoke a collaborator (owner only)."""
    note_service = NoteService(session)
    return ApiResponse.ok(
        await note_service.remove_collaborator(note_id, current_user_id, user_id)
    )
