"""JSON export and import endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import DOMAIN_ERRORS, to_http_exception
from models.user import User
from schemas.data import ExportDocument, ImportDocument, ImportResult
from services import data_service

router = APIRouter(prefix="/data", tags=["data"])


@router.get("/export", response_model=ExportDocument, response_model_by_alias=True)
async def export_data(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ExportDocument:
    """Download every bookmark and folder as one JSON document."""
    return await data_service.export_data(db, current_user.id)


@router.post("/import", response_model=ImportResult)
async def import_data(
    document: ImportDocument,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ImportResult:
    """Upsert records from an export document; existing records are merged."""
    try:
        return await data_service.import_data(db, current_user.id, document)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
