"""
Tests for the pipeline settings store and its typed snapshot.
"""

import pytest

from db import crud
from db.models import PipelineSetting
from db.schemas import DEFAULT_SETTINGS, PipelineConfig, build_pipeline_config
from utils.quality import Quality


class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.target_quality == Quality.UHD
        assert config.allow_lower_quality_until_upgrade is True
        assert config.min_quality_to_publish == Quality.HD
        assert config.rate_limit_rps == 3
        assert config.grace_period_hours == 24
        assert config.max_retry_attempts == 3

    def test_default_settings_match_config_defaults(self):
        config, rejected = build_pipeline_config(
            {item["key"]: item["value"] for item in DEFAULT_SETTINGS}
        )
        assert rejected == []
        assert config == PipelineConfig()

    def test_invalid_values_fall_back_to_defaults(self):
        config, rejected = build_pipeline_config(
            {
                "TARGET_QUALITY": "1080p",
                "RATE_LIMIT_RPS": -1,
                "INGEST_REFRESH_CRON": "not a cron",
                "UNRELATED_KEY": "ignored",
            }
        )
        assert config.target_quality == Quality.FULL_HD
        assert config.rate_limit_rps == 3
        assert config.refresh_cron == "0 */6 * * *"
        assert sorted(rejected) == ["INGEST_REFRESH_CRON", "RATE_LIMIT_RPS"]

    def test_config_is_immutable(self):
        config = PipelineConfig()
        with pytest.raises(Exception):
            config.target_quality = Quality.SD


class TestSettingsStore:
    @pytest.mark.asyncio
    async def test_initialize_inserts_every_default(self, session):
        created = await crud.initialize_default_settings(session)
        assert sorted(created) == sorted(item["key"] for item in DEFAULT_SETTINGS)
        assert await crud.get_setting_value(session, "TARGET_QUALITY") == "2160p"

    @pytest.mark.asyncio
    async def test_initialize_keeps_operator_values(self, session):
        await crud.initialize_default_settings(session)
        await crud.set_setting_value(session, "TARGET_QUALITY", "1080p")

        created = await crud.initialize_default_settings(session)

        assert created == []
        assert await crud.get_setting_value(session, "TARGET_QUALITY") == "1080p"

    @pytest.mark.asyncio
    async def test_set_unknown_key(self, session):
        with pytest.raises(KeyError):
            await crud.set_setting_value(session, "NOPE", 1)

    @pytest.mark.asyncio
    async def test_set_invalid_value(self, session):
        with pytest.raises(ValueError):
            await crud.set_setting_value(session, "MAX_RETRY_ATTEMPTS", 0)

    @pytest.mark.asyncio
    async def test_valid_quality_is_stored(self, session):
        setting = await crud.set_setting_value(session, "MIN_QUALITY_TO_PUBLISH", "1080p")
        assert setting.value == "1080p"

    @pytest.mark.asyncio
    async def test_load_pipeline_config(self, session):
        await crud.initialize_default_settings(session)
        await crud.set_setting_value(session, "ALLOW_LOWER_QUALITY_UNTIL_UPGRADE", False)
        await crud.set_setting_value(session, "GRACE_PERIOD_HOURS", 6)

        config = await crud.load_pipeline_config(session)

        assert config.allow_lower_quality_until_upgrade is False
        assert config.grace_period_hours == 6

    @pytest.mark.asyncio
    async def test_load_ignores_corrupt_rows(self, session):
        session.add(PipelineSetting(key="MIN_QUALITY_TO_PUBLISH", value="not-a-quality"))
        await session.commit()

        config = await crud.load_pipeline_config(session)

        assert config.min_quality_to_publish == Quality.HD
