from typing import Any

from sqlalchemy import JSON
from sqlmodel import Field

from db.models.base import TimestampMixin


class PipelineSetting(TimestampMixin, table=True):
    """Operator-editable key/value setting read by every ingestion job."""

    __tablename__ = "pipeline_setting"

    id: int | None = Field(default=None, primary_key=True)
    key: str = Field(unique=True, index=True)
    value: Any = Field(sa_type=JSON)
    description: str | None = None
