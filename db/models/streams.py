"""
Stream candidate model.

One row is one concrete, resolvable playback source for a catalog entry.
At most one candidate per entry is active at any time; this is kept by the
activation helpers in ``db.crud.streams`` rather than by a constraint, since
switching the active candidate is a deactivate followed by an activate.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, UniqueConstraint
from sqlmodel import Field

from db.enums import DeliveryType, ProviderName, VideoCodec
from db.models.base import TimestampMixin, str_enum_type, utc_now
from utils.quality import Quality


class StreamCandidate(TimestampMixin, table=True):
    __tablename__ = "stream_candidate"
    __table_args__ = (
        UniqueConstraint("catalog_entry_id", "url", name="uq_stream_candidate_entry_url"),
        Index("idx_stream_candidate_entry_active", "catalog_entry_id", "is_active"),
        Index("idx_stream_candidate_quality_active", "quality", "is_active"),
        Index("idx_stream_candidate_provider_active", "provider", "is_active"),
        Index("idx_stream_candidate_broken_verified", "is_broken", "last_verified_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    catalog_entry_id: int = Field(foreign_key="catalog_entry.id", ondelete="CASCADE")
    provider: ProviderName = Field(sa_type=str_enum_type(ProviderName))
    provider_ref: str | None = None
    url: str
    delivery: DeliveryType = Field(
        default=DeliveryType.LICENSED_EMBED, sa_type=str_enum_type(DeliveryType)
    )
    quality: Quality = Field(sa_type=str_enum_type(Quality, length=8))
    codec: VideoCodec | None = Field(default=None, sa_type=str_enum_type(VideoCodec, length=8))
    score: float = Field(default=0)
    audio_languages: list[str] = Field(default_factory=list, sa_type=JSON)
    subtitles: list[str] = Field(default_factory=list, sa_type=JSON)
    is_active: bool = Field(default=False)
    is_broken: bool = Field(default=False)
    added_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    last_checked_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    last_verified_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    superseded_by: int | None = Field(
        default=None, foreign_key="stream_candidate.id", ondelete="SET NULL"
    )
