"""Typed view of the operator-editable pipeline settings."""

from typing import Any

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, ValidationError, field_validator

from utils.quality import Quality


class PipelineConfig(BaseModel):
    """
    Snapshot of the pipeline settings, loaded once at the start of a job run.

    Jobs take this object as an argument instead of reading the settings store
    mid-run, so a run behaves the same from start to finish.
    """

    target_quality: Quality = Quality.UHD
    allow_lower_quality_until_upgrade: bool = True
    min_quality_to_publish: Quality = Quality.HD
    discover_cron: str = "*/30 * * * *"
    refresh_cron: str = "0 */6 * * *"
    reverify_cron: str = "0 */12 * * *"
    rate_limit_rps: float = Field(default=3, gt=0)
    grace_period_hours: float = Field(default=24, gt=0)
    max_retry_attempts: int = Field(default=3, ge=1)

    class Config:
        frozen = True

    @field_validator("discover_cron", "refresh_cron", "reverify_cron", mode="after")
    def validate_crontab(cls, value: str) -> str:
        CronTrigger.from_crontab(value)
        return value


# Setting key -> PipelineConfig field
SETTING_FIELDS: dict[str, str] = {
    "TARGET_QUALITY": "target_quality",
    "ALLOW_LOWER_QUALITY_UNTIL_UPGRADE": "allow_lower_quality_until_upgrade",
    "MIN_QUALITY_TO_PUBLISH": "min_quality_to_publish",
    "INGEST_DISCOVER_CRON": "discover_cron",
    "INGEST_REFRESH_CRON": "refresh_cron",
    "INGEST_REVERIFY_CRON": "reverify_cron",
    "RATE_LIMIT_RPS": "rate_limit_rps",
    "GRACE_PERIOD_HOURS": "grace_period_hours",
    "MAX_RETRY_ATTEMPTS": "max_retry_attempts",
}

DEFAULT_SETTINGS: list[dict[str, Any]] = [
    {
        "key": "TARGET_QUALITY",
        "value": Quality.UHD.value,
        "description": "Target quality for automatic upgrades",
    },
    {
        "key": "ALLOW_LOWER_QUALITY_UNTIL_UPGRADE",
        "value": True,
        "description": "Allow publishing lower quality while waiting for upgrade",
    },
    {
        "key": "MIN_QUALITY_TO_PUBLISH",
        "value": Quality.HD.value,
        "description": "Minimum quality to publish to users",
    },
    {
        "key": "INGEST_DISCOVER_CRON",
        "value": "*/30 * * * *",
        "description": "Cron schedule for catalog discovery (every 30 minutes)",
    },
    {
        "key": "INGEST_REFRESH_CRON",
        "value": "0 */6 * * *",
        "description": "Cron schedule for quality refresh (every 6 hours)",
    },
    {
        "key": "INGEST_REVERIFY_CRON",
        "value": "0 */12 * * *",
        "description": "Cron schedule for stream verification (every 12 hours)",
    },
    {
        "key": "RATE_LIMIT_RPS",
        "value": 3,
        "description": "Rate limit for provider API calls (requests per second)",
    },
    {
        "key": "GRACE_PERIOD_HOURS",
        "value": 24,
        "description": "Hours before a stream is re-verified or a broken stream is pruned",
    },
    {
        "key": "MAX_RETRY_ATTEMPTS",
        "value": 3,
        "description": "Maximum attempts for a failing provider request",
    },
]


def validate_setting_value(key: str, value: Any) -> Any:
    """
    Validate a raw stored value for ``key`` and return it in JSON form.

    Raises KeyError for an unknown key and ValueError for a value that does
    not fit the key's type.
    """
    field_name = SETTING_FIELDS[key]
    try:
        config = PipelineConfig.model_validate({field_name: value})
    except ValidationError as error:
        raise ValueError(f"Invalid value for {key}: {error.errors()[0]['msg']}") from error
    return config.model_dump(mode="json")[field_name]


def build_pipeline_config(stored: dict[str, Any]) -> tuple[PipelineConfig, list[str]]:
    """
    Build a config from stored ``{key: value}`` pairs.

    Unknown keys are ignored and invalid values fall back to the default for
    that key. Returns the config and the keys that were rejected.
    """
    values = {}
    rejected = []
    for key, value in stored.items():
        if key not in SETTING_FIELDS:
            continue
        try:
            validate_setting_value(key, value)
        except ValueError:
            rejected.append(key)
            continue
        values[SETTING_FIELDS[key]] = value
    return PipelineConfig.model_validate(values), rejected
