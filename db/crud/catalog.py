"""Read access to catalog entries."""

from collections.abc import Iterable

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from db.models import CatalogEntry


async def get_entry_by_id(session: AsyncSession, catalog_entry_id: int) -> CatalogEntry | None:
    return await session.get(CatalogEntry, catalog_entry_id)


async def get_entry_by_external_id(session: AsyncSession, external_id: int) -> CatalogEntry | None:
    result = await session.exec(select(CatalogEntry).where(CatalogEntry.external_id == external_id))
    return result.first()


async def get_existing_external_ids(session: AsyncSession, external_ids: Iterable[int]) -> set[int]:
    """Return the subset of ``external_ids`` already present in the catalog."""
    external_ids = list(external_ids)
    if not external_ids:
        return set()
    result = await session.exec(
        select(CatalogEntry.external_id).where(CatalogEntry.external_id.in_(external_ids))
    )
    return set(result.all())


async def create_catalog_entry(
    session: AsyncSession,
    *,
    external_id: int,
    title: str,
    year: int | None = None,
    alt_id: str | None = None,
) -> CatalogEntry:
    entry = CatalogEntry(external_id=external_id, title=title, year=year, alt_id=alt_id)
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    return entry
