from dataclasses import dataclass

from db.enums import DeliveryType, ProviderName, VideoCodec
from db.schemas import StreamDraft
from streaming_providers.exceptions import PermanentProviderError


@dataclass(frozen=True)
class ProviderSpec:
    name: ProviderName
    priority: int
    embed_url_template: str
    quality: str
    score: float
    codec: VideoCodec = VideoCodec.H264
    delivery: DeliveryType = DeliveryType.LICENSED_EMBED

    def embed_url(self, provider_ref: str) -> str:
        # Embed endpoints are keyed on the numeric catalog id only.
        if not provider_ref.isdigit():
            raise PermanentProviderError(
                f"{self.name.value} cannot resolve reference {provider_ref!r}",
                self.name.value,
            )
        return self.embed_url_template.format(id=provider_ref)

    def build_drafts(self, provider_ref: str) -> list[StreamDraft]:
        return [
            StreamDraft(
                url=self.embed_url(provider_ref),
                delivery=self.delivery,
                quality=self.quality,
                codec=self.codec.value,
                score=self.score,
                provider=self.name,
                provider_ref=provider_ref,
            )
        ]


# Ordered by priority, lower is tried first.
PROVIDERS: dict[ProviderName, ProviderSpec] = {
    ProviderName.AUTOEMBED: ProviderSpec(
        name=ProviderName.AUTOEMBED,
        priority=1,
        embed_url_template="https://autoembed.co/movie/tmdb/{id}",
        quality="1080p",
        score=85,
    ),
    ProviderName.TWO_EMBED: ProviderSpec(
        name=ProviderName.TWO_EMBED,
        priority=2,
        embed_url_template="https://www.2embed.cc/embed/tmdb/movie?id={id}",
        quality="720p",
        score=75,
    ),
    ProviderName.MULTIEMBED: ProviderSpec(
        name=ProviderName.MULTIEMBED,
        priority=3,
        embed_url_template="https://multiembed.mov/?video_id={id}&tmdb=1",
        quality="720p",
        score=70,
    ),
    ProviderName.EMBEDSU: ProviderSpec(
        name=ProviderName.EMBEDSU,
        priority=4,
        embed_url_template="https://embed.su/embed/movie/{id}",
        quality="720p",
        score=65,
    ),
}


def get_provider_spec(
    provider: ProviderName | str, providers: dict[ProviderName, ProviderSpec] | None = None
) -> ProviderSpec:
    providers = PROVIDERS if providers is None else providers
    try:
        return providers[ProviderName(provider)]
    except (KeyError, ValueError):
        raise PermanentProviderError(f"Unknown provider: {provider}", str(provider))
