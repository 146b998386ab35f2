"""Request/response schemas for the ingestion admin API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, model_validator

from db.enums import DeliveryType, IngestJob, IngestStatus, ProviderName, VideoCodec
from utils.quality import Quality


class MatchJobRequest(BaseModel):
    external_id: int | None = None
    catalog_entry_id: int | None = None

    @model_validator(mode="after")
    def require_identifier(self) -> "MatchJobRequest":
        if self.external_id is None and self.catalog_entry_id is None:
            raise ValueError("Either external_id or catalog_entry_id is required")
        return self


class SettingUpdate(BaseModel):
    value: Any
    description: str | None = None


class SettingResponse(BaseModel):
    key: str
    value: Any
    description: str | None = None

    class Config:
        from_attributes = True


class AuditRecordResponse(BaseModel):
    id: int
    job: IngestJob
    catalog_entry_id: int | None = None
    external_id: int | None = None
    status: IngestStatus
    message: str
    payload: dict[str, Any] | None = None
    error: str | None = None
    duration_ms: int
    metadata: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, record) -> "AuditRecordResponse":
        return cls(
            id=record.id,
            job=record.job,
            catalog_entry_id=record.catalog_entry_id,
            external_id=record.external_id,
            status=record.status,
            message=record.message,
            payload=record.payload,
            error=record.error,
            duration_ms=record.duration_ms,
            metadata=record.meta,
            created_at=record.created_at,
        )


class StreamCandidateResponse(BaseModel):
    id: int
    catalog_entry_id: int
    provider: ProviderName
    url: str
    delivery: DeliveryType
    quality: Quality
    codec: VideoCodec | None = None
    score: float
    audio_languages: list[str] = []
    subtitles: list[str] = []
    is_active: bool
    is_broken: bool
    added_at: datetime
    last_checked_at: datetime
    last_verified_at: datetime
    superseded_by: int | None = None

    class Config:
        from_attributes = True


class JobQueuedResponse(BaseModel):
    job: IngestJob
    message_id: str
    message: str


class ActivateStreamRequest(BaseModel):
    stream_id: int


class JobStatus(BaseModel):
    job: IngestJob
    crontab: str | None = None
    is_enabled: bool
    next_run_time: datetime | None = None
    last_run: AuditRecordResponse | None = None


class PipelineStatusResponse(BaseModel):
    jobs: list[JobStatus]
    recent: list[AuditRecordResponse]
    scheduler_running: bool
    global_scheduler_disabled: bool
