"""Pipeline settings endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from db import crud
from db.database import get_async_session, get_read_session
from db.schemas import SettingResponse, SettingUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ingest", tags=["Admin - Pipeline Settings"])


@router.get("/settings", response_model=list[SettingResponse])
async def list_pipeline_settings(session: AsyncSession = Depends(get_read_session)):
    return await crud.list_settings(session)


@router.put("/settings/{key}", response_model=SettingResponse)
async def update_pipeline_setting(
    key: str,
    update: SettingUpdate,
    session: AsyncSession = Depends(get_async_session),
):
    """Validate and store a setting. Jobs pick it up on their next run."""
    try:
        setting = await crud.set_setting_value(session, key, update.value, update.description)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown setting '{key}'",
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    logger.info(f"Pipeline setting {key} updated to {setting.value!r}")
    return setting
