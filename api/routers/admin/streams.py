"""Stored stream candidates and manual activation."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from db import crud
from db.database import get_async_session, get_read_session
from db.schemas import ActivateStreamRequest, StreamCandidateResponse
from utils.lock import entry_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ingest", tags=["Admin - Streams"])


@router.get("/streams/{catalog_entry_id}", response_model=list[StreamCandidateResponse])
async def list_stream_candidates(
    catalog_entry_id: int, session: AsyncSession = Depends(get_read_session)
):
    return await crud.get_candidates_for_entry(session, catalog_entry_id)


@router.get("/streams/{catalog_entry_id}/active", response_model=StreamCandidateResponse)
async def get_active_stream(
    catalog_entry_id: int, session: AsyncSession = Depends(get_read_session)
):
    candidate = await crud.get_active_candidate(session, catalog_entry_id)
    if candidate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active stream for catalog entry {catalog_entry_id}",
        )
    return candidate


@router.post("/streams/{catalog_entry_id}/activate", response_model=StreamCandidateResponse)
async def activate_stream(
    catalog_entry_id: int,
    request: ActivateStreamRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """
    Make an operator-chosen candidate the active stream of its entry.

    The previously active candidate is deactivated and points at the chosen
    one through ``superseded_by``. Broken candidates cannot be activated.
    """
    entry = await crud.get_entry_by_id(session, catalog_entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Catalog entry {catalog_entry_id} not found",
        )

    candidate = await crud.get_candidate_by_id(session, request.stream_id)
    if candidate is None or candidate.catalog_entry_id != catalog_entry_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Stream {request.stream_id} not found for catalog entry {catalog_entry_id}",
        )
    if candidate.is_broken:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Stream {request.stream_id} is marked as broken",
        )

    async with entry_lock(catalog_entry_id):
        await crud.activate_candidate(session, candidate)

    logger.info(
        f"Manually activated {candidate.quality.value} stream {candidate.id} "
        f"for catalog entry {catalog_entry_id}"
    )
    return candidate
