"""Label service implementation."""

from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ..exceptions import BadRequestError, ConflictError, NotFoundError, NotOwnerError
from ..logging import get_logger
from ..models.label import Label
from ..repositories.label_repository import LabelRepository
from ..schemas.labels import LabelCreate, LabelResponse, LabelUpdate

logger = get_logger("labels")

DUPLICATE_LABEL = "Label with this name already exists"


class LabelService:
    """Label CRUD; names are unique per owner."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.label_repo = LabelRepository(session)
        self.settings = get_settings()

    async def list_labels(self, user_id: UUID) -> List[LabelResponse]:
        labels = await self.label_repo.list_user_labels(user_id)
        return [LabelResponse.model_validate(label) for label in labels]

    async def create_label(self, user_id: UUID, request: LabelCreate) -> LabelResponse:
        name = self._check_name(request.name)
        if await self.label_repo.get_by_name(user_id, name):
            raise ConflictError(DUPLICATE_LABEL)

        try:
            label = await self.label_repo.create_label(
                {
                    "name": name,
                    "color": request.color or self.settings.default_label_color,
                    "owner_id": user_id,
                }
            )
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(DUPLICATE_LABEL)
        return LabelResponse.model_validate(label)

    async def update_label(
        self, label_id: UUID, user_id: UUID, request: LabelUpdate
    ) -> LabelResponse:
        label = await self._get_owned(label_id, user_id, "update")

        update_data = {}
        if request.name is not None and request.name != label.name:
            name = self._check_name(request.name)
            if await self.label_repo.get_by_name(user_id, name):
                raise ConflictError(DUPLICATE_LABEL)
            update_data["name"] = name
        if request.color is not None:
            update_data["color"] = request.color

        if update_data:
            try:
                label = await self.label_repo.update_label(label, update_data)
            except IntegrityError:
                await self.session.rollback()
                raise ConflictError(DUPLICATE_LABEL)
        return LabelResponse.model_validate(label)

    async def delete_label(self, label_id: UUID, user_id: UUID) -> None:
        """Delete label; notes keep existing without it."""
        label = await self._get_owned(label_id, user_id, "delete")
        await self.label_repo.delete_label(label)
        logger.info(f"Deleted label {label_id}")

    async def _get_owned(self, label_id: UUID, user_id: UUID, action: str) -> Label:
        label = await self.label_repo.get_by_id(label_id)
        if not label:
            raise NotFoundError("Label not found")
        if label.owner_id != user_id:
            raise NotOwnerError(f"Not authorized to {action} this label")
        return label

    def _check_name(self, name: str) -> str:
        try:
            name = Label.normalize_name(name)
        except ValueError as e:
            raise BadRequestError(str(e))
        if len(name) > self.settings.label_name_max_length:
            raise BadRequestError(
                f"Label name can not be more than {self.settings.label_name_max_length} characters"
            )
        return name
