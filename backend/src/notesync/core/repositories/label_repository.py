"""Label repository for database operations."""

from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.label import Label, NoteLabel


class LabelRepository:
    """Repository for label database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_label(self, label_data: dict) -> Label:
        label = Label(**label_data)
        self.session.add(label)
        await self.session.commit()
        await self.session.refresh(label)
        return label

    async def get_by_id(self, label_id: UUID) -> Optional[Label]:
        stmt = select(Label).where(Label.id == label_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_name(self, owner_id: UUID, name: str) -> Optional[Label]:
        """Get a user's label by exact name."""
        stmt = select(Label).where(Label.owner_id == owner_id, Label.name == name)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_ids(self, label_ids: Iterable[UUID]) -> List[Label]:
        ids = list(label_ids)
        if not ids:
            return []
        stmt = select(Label).where(Label.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def list_user_labels(self, owner_id: UUID) -> List[Label]:
        """List user labels ordered by name."""
        stmt = select(Label).where(Label.owner_id == owner_id).order_by(Label.name)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def update_label(self, label: Label, update_data: dict) -> Label:
        for key, value in update_data.items():
            setattr(label, key, value)
        await self.session.commit()
        await self.session.refresh(label)
        return label

    async def delete_label(self, label: Label) -> None:
        """Delete label, detaching it from every note first."""
        await self.session.execute(delete(NoteLabel).where(NoteLabel.label_id == label.id))
        await self.session.delete(label)
        await self.session.commit()
