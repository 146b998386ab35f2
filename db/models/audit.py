from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Index, Text
from sqlmodel import Field, SQLModel

from db.enums import IngestJob, IngestStatus
from db.models.base import str_enum_type, utc_now


class IngestAuditRecord(SQLModel, table=True):
    """Append-only outcome record written by the ingestion jobs.

    ``meta`` is stored in the ``metadata`` column; the attribute name is
    reserved by SQLModel.
    """

    __tablename__ = "ingest_audit_record"
    __table_args__ = (
        Index("idx_ingest_audit_job_status_created", "job", "status", "created_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    job: IngestJob = Field(sa_type=str_enum_type(IngestJob, length=16), index=True)
    catalog_entry_id: int | None = Field(default=None, index=True)
    external_id: int | None = Field(default=None, index=True)
    status: IngestStatus = Field(sa_type=str_enum_type(IngestStatus, length=16), index=True)
    message: str
    payload: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    error: str | None = Field(default=None, sa_type=Text)
    duration_ms: int = Field(default=0)
    meta: dict[str, Any] | None = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), index=True
    )
    expires_at: datetime | None = Field(
        default=None, sa_type=DateTime(timezone=True), index=True
    )
