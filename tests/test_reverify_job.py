"""
Tests for the reverify job in ingestion/reverify.py
"""

from datetime import timedelta

import pytest

from db import crud
from db.enums import IngestJob, IngestStatus, ProviderName
from db.models.base import utc_now
from db.schemas import PipelineConfig
from ingestion.reverify import run_reverify
from tests.fakes import FakeAdapter, make_draft

GRACE = PipelineConfig(grace_period_hours=24)


async def seed_candidate(session, entry, url, quality="1080p", *, verified_hours_ago, active=True):
    verified_at = utc_now() - timedelta(hours=verified_hours_ago)
    candidate = await crud.create_candidate(
        session, entry.id, make_draft(url, quality), now=verified_at
    )
    if active:
        await crud.activate_candidate(session, candidate, now=verified_at)
    return candidate


class TestReverify:
    @pytest.mark.asyncio
    async def test_working_stream_is_marked_verified(self, session, matrix):
        candidate = await seed_candidate(session, matrix, "https://ok/603", verified_hours_ago=30)
        adapter = FakeAdapter(working_urls={"https://ok/603"})

        payload = await run_reverify(session, GRACE, adapter)

        assert payload["verified"] == 1
        assert payload["broken"] == 0
        assert adapter.verified == ["https://ok/603"]
        await session.refresh(candidate)
        assert candidate.is_active
        assert not candidate.is_broken

    @pytest.mark.asyncio
    async def test_recently_verified_streams_are_skipped(self, session, matrix):
        await seed_candidate(session, matrix, "https://fresh/603", verified_hours_ago=1)
        adapter = FakeAdapter()

        payload = await run_reverify(session, GRACE, adapter)

        assert payload["verified"] == 0
        assert adapter.verified == []

    @pytest.mark.asyncio
    async def test_broken_stream_is_replaced(self, session, matrix):
        broken = await seed_candidate(session, matrix, "https://dead/603", verified_hours_ago=30)
        adapter = FakeAdapter(
            {
                ProviderName.AUTOEMBED: [make_draft("https://dead/603", "1080p")],
                ProviderName.EMBEDSU: [
                    make_draft("https://alt/603", "720p", provider=ProviderName.EMBEDSU)
                ],
            }
        )

        payload = await run_reverify(session, GRACE, adapter)

        assert payload["broken"] == 1
        assert payload["replaced"] == 1
        await session.refresh(broken)
        assert broken.is_broken
        assert not broken.is_active

        replacement = await crud.get_active_candidate(session, matrix.id)
        assert replacement.url == "https://alt/603"
        assert broken.superseded_by == replacement.id

        errors = await crud.list_audit_records(
            session, job=IngestJob.REVERIFY, status=IngestStatus.ERROR
        )
        assert len(errors) == 1
        assert errors[0].payload["url"] == "https://dead/603"
        assert errors[0].meta["provider"] == "AutoEmbed"

    @pytest.mark.asyncio
    async def test_broken_stream_without_alternative(self, session, matrix):
        broken = await seed_candidate(session, matrix, "https://dead/603", verified_hours_ago=30)
        adapter = FakeAdapter({ProviderName.AUTOEMBED: [make_draft("https://dead/603", "1080p")]})

        payload = await run_reverify(session, GRACE, adapter)

        assert payload["broken"] == 1
        assert payload["replaced"] == 0
        assert await crud.get_active_candidate(session, matrix.id) is None
        await session.refresh(broken)
        assert broken.is_broken

    @pytest.mark.asyncio
    async def test_old_broken_rows_are_swept(self, session, matrix):
        old = await seed_candidate(
            session, matrix, "https://old-dead/603", verified_hours_ago=49, active=False
        )
        recent = await seed_candidate(
            session, matrix, "https://recent-dead/603", verified_hours_ago=30, active=False
        )
        for candidate in (old, recent):
            candidate.is_broken = True
            session.add(candidate)
        await session.commit()

        payload = await run_reverify(session, GRACE, FakeAdapter())

        assert payload["cleaned"] == 1
        assert await crud.get_candidate_by_url(session, matrix.id, "https://old-dead/603") is None
        assert await crud.get_candidate_by_url(session, matrix.id, "https://recent-dead/603")

    @pytest.mark.asyncio
    async def test_summary_audit(self, session, config):
        await run_reverify(session, config, FakeAdapter())

        records = await crud.list_audit_records(session)
        assert len(records) == 1
        assert records[0].status == IngestStatus.OK
        assert records[0].payload["grace_period_hours"] == config.grace_period_hours

    @pytest.mark.asyncio
    async def test_first_alternative_wins_over_better_quality(self, session, matrix):
        entry_id = matrix.id
        await seed_candidate(session, matrix, "https://dead/603", verified_hours_ago=30)
        adapter = FakeAdapter(
            {
                ProviderName.AUTOEMBED: [make_draft("https://dead/603", "1080p")],
                ProviderName.MULTIEMBED: [
                    make_draft("https://first/603", "720p", provider=ProviderName.MULTIEMBED)
                ],
                ProviderName.EMBEDSU: [
                    make_draft("https://uhd/603", "2160p", provider=ProviderName.EMBEDSU, score=99)
                ],
            }
        )

        payload = await run_reverify(session, GRACE, adapter)

        assert payload["replaced"] == 1
        active = await crud.get_active_candidate(session, entry_id)
        assert active.url == "https://first/603"
        assert active.quality == "720p"
        assert await crud.get_candidate_by_url(session, entry_id, "https://uhd/603") is None

    @pytest.mark.asyncio
    async def test_verify_failure_does_not_stop_the_scan(self, session, matrix):
        reloaded = await crud.create_catalog_entry(
            session, external_id=604, title="The Matrix Reloaded", year=2003, alt_id="tt0234215"
        )
        failing = await seed_candidate(session, matrix, "https://flaky/603", verified_hours_ago=40)
        working = await seed_candidate(session, reloaded, "https://ok/604", verified_hours_ago=30)
        failing_id, working_id = failing.id, working.id

        class FlakyAdapter(FakeAdapter):
            async def verify_stream(self, url):
                if url == "https://flaky/603":
                    raise RuntimeError("connection reset")
                return await super().verify_stream(url)

        adapter = FlakyAdapter(working_urls={"https://ok/604"})

        payload = await run_reverify(session, GRACE, adapter)

        assert payload["verified"] == 2
        assert payload["broken"] == 0
        assert adapter.verified == ["https://ok/604"]

        working = await crud.get_candidate_by_id(session, working_id)
        assert working.is_active
        failing = await crud.get_candidate_by_id(session, failing_id)
        assert failing.is_active
        assert not failing.is_broken

        records = await crud.list_audit_records(session, job=IngestJob.REVERIFY)
        assert [r.status for r in records] == [IngestStatus.OK]
