import asyncio

from fastapi import APIRouter, HTTPException, Query

from alchemist.config import settings
from alchemist.models.analysis import AnalysisParams
from alchemist.models.session import (
    EnvelopeResponse,
    MarkersResponse,
    Session,
    SessionResponse,
    SessionStatus,
)
from alchemist.services.pipeline import cancel_analysis, compute_envelope, start_analysis
from alchemist.storage.session_store import session_store

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _get_session_or_404(session_id: str) -> Session:
    session = session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _to_response(session: Session) -> SessionResponse:
    return SessionResponse(
        **session.model_dump(),
        sample_count=session_store.count_samples(session.id),
    )


@router.get("/", response_model=list[SessionResponse])
async def list_sessions():
    """List all sessions, newest first."""
    return [_to_response(s) for s in session_store.list_all()]


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    """Get session status and progress."""
    return _to_response(_get_session_or_404(session_id))


@router.get("/{session_id}/markers", response_model=MarkersResponse)
async def get_markers(session_id: str):
    """Fused event times, for drawing markers over the waveform."""
    _get_session_or_404(session_id)
    return MarkersResponse(markers=session_store.get_markers(session_id))


@router.get("/{session_id}/envelope", response_model=EnvelopeResponse)
async def get_envelope(session_id: str, points: int | None = Query(None, ge=1, le=10000)):
    """Amplitude envelope of the recording, reduced to ``points`` values."""
    session = _get_session_or_404(session_id)
    buffer = await asyncio.to_thread(session_store.get_buffer, session_id)
    if buffer is None:
        raise HTTPException(status_code=409, detail="Audio not available for this session")
    points = points or settings.envelope_points
    envelope = await asyncio.to_thread(compute_envelope, buffer, session.params, points)
    return EnvelopeResponse(sample_rate=buffer.sample_rate, points=envelope)


@router.post("/{session_id}/reanalyze", response_model=SessionResponse)
async def reanalyze(session_id: str, params: AnalysisParams):
    """Discard current samples and analyze again with new parameters."""
    session = _get_session_or_404(session_id)
    cancel_analysis(session_id)
    session_store.clear_results(session_id)
    session.params = params
    session.error = None
    session_store.update_status(session_id, SessionStatus.pending, progress=0)

    start_analysis(session_id)
    return _to_response(session)


@router.delete("/{session_id}")
async def delete_session(session_id: str):
    """Delete a session; an analysis still running for it is cancelled."""
    _get_session_or_404(session_id)
    cancelled = cancel_analysis(session_id)
    session_store.delete(session_id)
    return {"deleted": session_id, "cancelled_analysis": cancelled}
