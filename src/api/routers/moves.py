"""Drag-and-drop move endpoint."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import DOMAIN_ERRORS, to_http_exception
from models.user import User
from schemas.move import MoveRequest, MoveResponse
from services.move_service import DragSourceType, apply_drop

router = APIRouter(prefix="/moves", tags=["moves"])


@router.post("/", response_model=MoveResponse)
async def move_item(
    data: MoveRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> MoveResponse:
    """
    Drop a bookmark or folder on a folder or a static location.

    Drops that are not allowed (a folder into its own subfolder, a folder on
    Trash, ...) answer 200 with applied=false and a warning.
    """
    try:
        decision = await apply_drop(
            db, current_user.id, DragSourceType(data.source_type), data.source_id, data.target,
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return MoveResponse(applied=decision.applied, warning=decision.warning)
