"""Pipeline settings store."""

import logging
from typing import Any

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from db.models import PipelineSetting
from db.schemas.config import (
    DEFAULT_SETTINGS,
    SETTING_FIELDS,
    PipelineConfig,
    build_pipeline_config,
    validate_setting_value,
)

logger = logging.getLogger(__name__)


async def initialize_default_settings(session: AsyncSession) -> list[str]:
    """
    Insert any default setting that is missing.

    Existing rows are left untouched so operator edits survive a restart.
    Returns the keys that were created.
    """
    result = await session.exec(select(PipelineSetting.key))
    existing = set(result.all())

    created = []
    for default in DEFAULT_SETTINGS:
        if default["key"] in existing:
            continue
        session.add(PipelineSetting(**default))
        created.append(default["key"])

    if created:
        await session.commit()
        logger.info("Initialized default pipeline settings: %s", ", ".join(created))
    return created


async def list_settings(session: AsyncSession) -> list[PipelineSetting]:
    result = await session.exec(select(PipelineSetting).order_by(PipelineSetting.key))
    return list(result.all())


async def get_setting(session: AsyncSession, key: str) -> PipelineSetting | None:
    result = await session.exec(select(PipelineSetting).where(PipelineSetting.key == key))
    return result.first()


async def get_setting_value(session: AsyncSession, key: str, default: Any = None) -> Any:
    setting = await get_setting(session, key)
    return setting.value if setting else default


async def set_setting_value(
    session: AsyncSession, key: str, value: Any, description: str | None = None
) -> PipelineSetting:
    """
    Operator update of a pipeline setting.

    Raises KeyError for an unknown key and ValueError for an invalid value.
    """
    if key not in SETTING_FIELDS:
        raise KeyError(key)
    value = validate_setting_value(key, value)

    setting = await get_setting(session, key)
    if setting is None:
        setting = PipelineSetting(key=key, value=value, description=description)
    else:
        setting.value = value
        if description is not None:
            setting.description = description
    session.add(setting)
    await session.commit()
    await session.refresh(setting)
    return setting


async def load_pipeline_config(session: AsyncSession) -> PipelineConfig:
    """Read every pipeline setting once and return a typed snapshot."""
    result = await session.exec(select(PipelineSetting))
    stored = {setting.key: setting.value for setting in result.all()}
    config, rejected = build_pipeline_config(stored)
    for key in rejected:
        logger.warning("Ignoring invalid value %r for setting %s, using default", stored[key], key)
    return config
