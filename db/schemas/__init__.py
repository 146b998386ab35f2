"""
Database schemas package.

This module re-exports all Pydantic schemas for easy importing:
    from db.schemas import PipelineConfig, StreamDraft, ...
"""

from db.schemas.admin import (
    ActivateStreamRequest,
    AuditRecordResponse,
    JobQueuedResponse,
    JobStatus,
    MatchJobRequest,
    PipelineStatusResponse,
    SettingResponse,
    SettingUpdate,
    StreamCandidateResponse,
)
from db.schemas.config import (
    DEFAULT_SETTINGS,
    SETTING_FIELDS,
    PipelineConfig,
    build_pipeline_config,
    validate_setting_value,
)
from db.schemas.provider import ExternalIds, ProviderMatch, StreamDraft

__all__ = [
    "ActivateStreamRequest",
    "AuditRecordResponse",
    "JobQueuedResponse",
    "JobStatus",
    "MatchJobRequest",
    "PipelineStatusResponse",
    "SettingResponse",
    "SettingUpdate",
    "StreamCandidateResponse",
    "DEFAULT_SETTINGS",
    "SETTING_FIELDS",
    "PipelineConfig",
    "build_pipeline_config",
    "validate_setting_value",
    "ExternalIds",
    "ProviderMatch",
    "StreamDraft",
]
