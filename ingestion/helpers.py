import logging
from dataclasses import dataclass

from db.models import CatalogEntry
from db.schemas import ExternalIds, StreamDraft
from streaming_providers.adapter import ProviderAdapter
from utils.quality import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryRef:
    """Plain copy of the catalog entry fields a job needs.

    Jobs hold on to these instead of ORM instances, which expire when a
    failed candidate rolls the session back.
    """

    catalog_entry_id: int
    external_id: int
    alt_id: str | None = None
    title: str | None = None
    year: int | None = None

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "EntryRef":
        return cls(
            catalog_entry_id=entry.id,
            external_id=entry.external_id,
            alt_id=entry.alt_id,
            title=entry.title,
            year=entry.year,
        )

    @property
    def external_ids(self) -> ExternalIds:
        return ExternalIds(
            primary_id=self.external_id,
            secondary_id=self.alt_id,
            title=self.title,
            year=self.year,
        )


async def fetch_entry_streams(adapter: ProviderAdapter, entry: EntryRef) -> list[StreamDraft]:
    """
    Ask every provider for streams of ``entry``, in provider priority order.

    Drafts come back with their quality normalized. Providers that fail
    contribute nothing.
    """
    matches = await adapter.search_by_external_ids(entry.external_ids)
    drafts = []
    for match in matches:
        for draft in await adapter.get_streams(match):
            drafts.append(
                draft.model_copy(
                    update={
                        "quality": normalize(draft.quality).value,
                        "provider": draft.provider or match.provider,
                        "provider_ref": draft.provider_ref or match.provider_ref,
                    }
                )
            )
    logger.debug(
        "Collected %d streams for catalog entry %s from %d providers",
        len(drafts),
        entry.catalog_entry_id,
        len(matches),
    )
    return drafts
