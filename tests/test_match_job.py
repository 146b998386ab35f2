"""
Tests for the match job in ingestion/match.py
"""

import pytest

from db import crud
from db.enums import IngestJob, IngestStatus, ProviderName
from db.schemas import PipelineConfig
from ingestion.exceptions import CatalogEntryNotFound, InvalidArgument
from ingestion.match import run_match
from tests.fakes import FakeAdapter, make_draft
from utils.quality import Quality


async def seed_active(session, entry, url="https://old/603", quality="1080p"):
    candidate = await crud.create_candidate(session, entry.id, make_draft(url, quality))
    await crud.activate_candidate(session, candidate)
    return candidate


class TestMatchSkips:
    @pytest.mark.asyncio
    async def test_requires_an_identifier(self, session, config):
        with pytest.raises(InvalidArgument):
            await run_match(session, config, FakeAdapter())
        assert await crud.list_audit_records(session) == []

    @pytest.mark.asyncio
    async def test_unknown_external_id_is_skipped(self, session, config):
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://p/1", "1080p")]})
        await run_match(session, config, adapter, external_id=999)

        records = await crud.list_audit_records(session)
        assert [r.status for r in records] == [IngestStatus.SKIP]
        assert records[0].external_id == 999
        assert adapter.searched == []

    @pytest.mark.asyncio
    async def test_unknown_catalog_entry_id_is_an_error(self, session, config):
        with pytest.raises(CatalogEntryNotFound):
            await run_match(session, config, FakeAdapter(), catalog_entry_id=42)

        records = await crud.list_audit_records(session)
        assert [r.status for r in records] == [IngestStatus.ERROR]
        assert "42" in records[0].message
        assert records[0].error

    @pytest.mark.asyncio
    async def test_no_sources(self, session, config, matrix):
        await run_match(session, config, FakeAdapter(), external_id=603)

        records = await crud.list_audit_records(session)
        assert len(records) == 1
        assert records[0].status == IngestStatus.SKIP
        assert records[0].message == "No streaming sources found"
        assert await crud.get_candidates_for_entry(session, matrix.id) == []

    @pytest.mark.asyncio
    async def test_nothing_meets_minimum_quality(self, session, matrix):
        config = PipelineConfig(min_quality_to_publish="1080p")
        adapter = FakeAdapter(
            {
                ProviderName.AUTOEMBED: [make_draft("https://p/1", "720p")],
                ProviderName.EMBEDSU: [make_draft("https://p/2", "CAM")],
            }
        )
        await run_match(session, config, adapter, external_id=603)

        records = await crud.list_audit_records(session)
        assert [r.status for r in records] == [IngestStatus.SKIP]
        assert "1080p" in records[0].message
        assert await crud.get_candidates_for_entry(session, matrix.id) == []


class TestMatchActivation:
    @pytest.mark.asyncio
    async def test_end_to_end_first_match(self, session, config, matrix):
        config = PipelineConfig(min_quality_to_publish="720p")
        adapter = FakeAdapter(
            {ProviderName.AUTOEMBED: [make_draft("https://p/603", "FullHD", score=85)]}
        )

        payload = await run_match(session, config, adapter, external_id=603)

        candidates = await crud.get_candidates_for_entry(session, matrix.id)
        assert len(candidates) == 1
        assert candidates[0].quality == Quality.FULL_HD
        assert candidates[0].is_active

        records = await crud.list_audit_records(session)
        assert len(records) == 1
        record = records[0]
        assert record.job == IngestJob.MATCH
        assert record.status == IngestStatus.OK
        assert record.catalog_entry_id == matrix.id
        assert record.external_id == 603
        assert record.payload["activated"] is True
        assert record.payload["activation_reason"] == "First available stream"
        assert record.meta == {"provider": "AutoEmbed", "quality": "1080p", "url": "https://p/603"}
        assert payload == record.payload

    @pytest.mark.asyncio
    async def test_match_by_catalog_entry_id(self, session, config, matrix):
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://p/603", "1080p")]})
        await run_match(session, config, adapter, catalog_entry_id=matrix.id)
        active = await crud.get_active_candidate(session, matrix.id)
        assert active.url == "https://p/603"

    @pytest.mark.asyncio
    async def test_best_of_several_providers_is_activated(self, session, config, matrix):
        adapter = FakeAdapter(
            {
                ProviderName.AUTOEMBED: [make_draft("https://a/603", "1080p", score=85)],
                ProviderName.TWO_EMBED: [
                    make_draft("https://b/603", "4K", provider=ProviderName.TWO_EMBED, score=60)
                ],
                ProviderName.EMBEDSU: [
                    make_draft("https://c/603", "CAM", provider=ProviderName.EMBEDSU, score=99)
                ],
            }
        )
        payload = await run_match(session, config, adapter, external_id=603)

        assert payload["total_streams"] == 3
        assert payload["publishable_streams"] == 2
        active = await crud.get_active_candidate(session, matrix.id)
        assert active.url == "https://b/603"
        assert active.quality == Quality.UHD
        assert len(await crud.get_candidates_for_entry(session, matrix.id)) == 2

    @pytest.mark.asyncio
    async def test_lower_quality_kept_out_without_allow_lower(self, session, matrix):
        old = await seed_active(session, matrix, quality="1080p")
        config = PipelineConfig(allow_lower_quality_until_upgrade=False)
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://new/603", "720p")]})

        payload = await run_match(session, config, adapter, external_id=603)

        assert payload["activated"] is False
        active = await crud.get_active_candidate(session, matrix.id)
        assert active.id == old.id
        new = await crud.get_candidate_by_url(session, matrix.id, "https://new/603")
        assert new is not None and not new.is_active

    @pytest.mark.asyncio
    async def test_lower_quality_activated_with_allow_lower(self, session, matrix):
        old = await seed_active(session, matrix, quality="1080p")
        config = PipelineConfig(allow_lower_quality_until_upgrade=True)
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://new/603", "720p")]})

        payload = await run_match(session, config, adapter, external_id=603)

        assert payload["activated"] is True
        assert payload["activation_reason"].startswith("Quality change")
        new = await crud.get_active_candidate(session, matrix.id)
        assert new.url == "https://new/603"
        await session.refresh(old)
        assert not old.is_active
        assert old.superseded_by == new.id

    @pytest.mark.asyncio
    async def test_better_quality_is_an_upgrade(self, session, matrix):
        await seed_active(session, matrix, quality="720p")
        config = PipelineConfig(allow_lower_quality_until_upgrade=False)
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://new/603", "1080p")]})

        payload = await run_match(session, config, adapter, external_id=603)

        assert payload["activation_reason"].startswith("Quality upgrade")
        assert (await crud.get_active_candidate(session, matrix.id)).url == "https://new/603"

    @pytest.mark.asyncio
    async def test_same_quality_keeps_current(self, session, config, matrix):
        old = await seed_active(session, matrix, quality="1080p")
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://new/603", "FullHD")]})

        payload = await run_match(session, config, adapter, external_id=603)

        assert payload["activated"] is False
        assert (await crud.get_active_candidate(session, matrix.id)).id == old.id

    @pytest.mark.asyncio
    async def test_rerun_does_not_duplicate_candidates(self, session, config, matrix):
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://p/603", "1080p")]})
        await run_match(session, config, adapter, external_id=603)
        await run_match(session, config, adapter, external_id=603)

        candidates = await crud.get_candidates_for_entry(session, matrix.id)
        assert len(candidates) == 1
        assert candidates[0].is_active
        assert [r.status for r in await crud.list_audit_records(session)] == [
            IngestStatus.OK,
            IngestStatus.OK,
        ]


class TestMatchFailures:
    @pytest.mark.asyncio
    async def test_one_failed_upsert_does_not_stop_the_others(
        self, session, config, matrix, monkeypatch
    ):
        original = crud.upsert_candidate

        async def flaky_upsert(session, catalog_entry_id, draft, **kwargs):
            if draft.url == "https://bad/603":
                raise RuntimeError("constraint violated")
            return await original(session, catalog_entry_id, draft, **kwargs)

        monkeypatch.setattr(crud, "upsert_candidate", flaky_upsert)
        adapter = FakeAdapter(
            {
                ProviderName.AUTOEMBED: [make_draft("https://bad/603", "4K", score=90)],
                ProviderName.TWO_EMBED: [
                    make_draft("https://good/603", "720p", provider=ProviderName.TWO_EMBED)
                ],
            }
        )

        payload = await run_match(session, config, adapter, external_id=603)

        assert payload["stored_streams"] == 1
        active = await crud.get_active_candidate(session, matrix.id)
        assert active.url == "https://good/603"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_audited_and_raised(self, session, config, matrix):
        class BrokenAdapter(FakeAdapter):
            async def search_by_external_ids(self, ids):
                raise RuntimeError("provider registry exploded")

        with pytest.raises(RuntimeError):
            await run_match(session, config, BrokenAdapter(), external_id=603)

        records = await crud.list_audit_records(session)
        assert len(records) == 1
        assert records[0].status == IngestStatus.ERROR
        assert records[0].message == "provider registry exploded"
        assert "RuntimeError" in records[0].error
        assert records[0].catalog_entry_id == matrix.id
