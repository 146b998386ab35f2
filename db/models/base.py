"""Base models and mixins for all database models."""

from datetime import datetime
from enum import Enum

import pytz
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def str_enum_type(enum_cls: type[Enum], length: int = 32) -> SAEnum:
    """Store a str enum by its value ("720p") rather than its member name."""
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=length,
    )


class TimestampMixin(SQLModel):
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: datetime = Field(
        default_factory=utc_now,
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column_kwargs={"onupdate": utc_now},
        index=True,
        sa_type=DateTime(timezone=True),
    )
