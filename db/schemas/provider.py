"""Value objects exchanged with the provider adapter."""

from pydantic import BaseModel, Field

from db.enums import DeliveryType, ProviderName


class ExternalIds(BaseModel):
    """Identifiers a provider lookup can be keyed on."""

    primary_id: int | str | None = None  # catalog id, e.g. TMDB
    secondary_id: str | None = None  # industry id, e.g. IMDb
    title: str | None = None
    year: int | None = None

    def is_empty(self) -> bool:
        return not any(
            value not in (None, "") for value in (self.primary_id, self.secondary_id, self.title)
        )


class ProviderMatch(BaseModel):
    provider: ProviderName
    provider_ref: str
    priority: int


class StreamDraft(BaseModel):
    """A playable source as reported by a provider, before it is persisted.

    ``quality`` is the provider's raw label; callers normalize it.
    """

    url: str
    delivery: DeliveryType = DeliveryType.LICENSED_EMBED
    quality: str
    codec: str | None = None
    score: float = 0
    provider: ProviderName | None = None
    provider_ref: str | None = None
    audio_languages: list[str] = Field(default_factory=list)
    subtitles: list[str] = Field(default_factory=list)
