import asyncio
import logging

from alchemist.config import settings
from alchemist.errors import AnalysisError, DecodeError
from alchemist.ml.feature_extractor import decimate_envelope, envelope_follower
from alchemist.models.analysis import AnalysisParams, AnalysisResult, SpectrumMode
from alchemist.models.buffer import PcmBuffer
from alchemist.models.session import SessionStatus
from alchemist.services.audio_loader import load_audio
from alchemist.services.event_fusion import fuse_events
from alchemist.services.onset_detection import detect_onsets, detect_transients
from alchemist.services.segmenter import segment_events
from alchemist.storage.file_manager import file_manager
from alchemist.storage.session_store import session_store

logger = logging.getLogger(__name__)


def detect_events(
    buffer: PcmBuffer, params: AnalysisParams, mode: SpectrumMode = SpectrumMode.magnitude
) -> tuple[list[float], list[float], list[float]]:
    """Run both detectors and fuse them.

    Returns (transients, onsets, markers).
    """
    threshold = params.detection_threshold()
    y, sr = buffer.mono, buffer.sample_rate
    transients = detect_transients(y, sr, threshold)
    onsets = detect_onsets(y, sr, threshold, mode)
    markers = fuse_events(transients, onsets, params.min_gap)
    logger.info(f"Fused {len(transients) + len(onsets)} events into {len(markers)} markers")
    return transients, onsets, markers


def analyze_buffer(
    buffer: PcmBuffer, params: AnalysisParams, mode: SpectrumMode | None = None
) -> AnalysisResult:
    """One full analysis pass: detect, fuse, segment and classify."""
    mode = mode or settings.spectrum_mode
    transients, onsets, markers = detect_events(buffer, params, mode)
    samples = segment_events(buffer, markers, params.min_length_ms, mode)
    return AnalysisResult(
        samples=samples,
        markers=markers,
        transient_count=len(transients),
        onset_count=len(onsets),
        duration=buffer.duration,
        sample_rate=buffer.sample_rate,
        channels=buffer.num_channels,
    )


def compute_envelope(buffer: PcmBuffer, params: AnalysisParams, points: int) -> list[float]:
    envelope = envelope_follower(buffer.mono, buffer.sample_rate, params.attack_ms, params.release_ms)
    return decimate_envelope(envelope, points)


async def run_analysis(session_id: str) -> None:
    """Decode a session's upload and analyze it, recording progress on the session.

    Unreadable audio fails the session. A degenerate analysis completes it
    with zero samples and the reason in ``error``. If the session is deleted
    while this runs, the result is discarded.
    """
    try:
        session = session_store.get(session_id)
        if session is None:
            return

        # Step 1: Decode
        session_store.update_status(session_id, SessionStatus.decoding, progress=5)
        audio_path = file_manager.audio_path(session_id, session.filename)
        try:
            buffer = await asyncio.to_thread(load_audio, audio_path)
        except DecodeError as e:
            logger.warning(f"Session {session_id}: {e}")
            session_store.update_status(session_id, SessionStatus.failed, error=str(e))
            return
        session_store.attach_buffer(session_id, buffer)
        session.sample_rate = buffer.sample_rate
        session.channels = buffer.num_channels
        session.duration = round(buffer.duration, 4)

        mode = settings.spectrum_mode
        samples = []
        markers: list[float] = []
        error = None
        try:
            # Step 2: Transient + onset detection, fusion
            session_store.update_status(session_id, SessionStatus.detecting_events, progress=30)
            transients, onsets, markers = await asyncio.to_thread(
                detect_events, buffer, session.params, mode
            )
            session.transient_count = len(transients)
            session.onset_count = len(onsets)

            # Step 3: Segment + classify
            session_store.update_status(session_id, SessionStatus.classifying, progress=65)
            samples = await asyncio.to_thread(
                segment_events, buffer, markers, session.params.min_length_ms, mode
            )
        except AnalysisError as e:
            logger.warning(f"Session {session_id}: analysis yielded no samples: {e}")
            samples = []
            error = str(e)

        if session_store.get(session_id) is None:
            logger.info(f"Session {session_id} was deleted during analysis, discarding result")
            return

        session_store.save_results(session_id, samples, markers)
        session_store.update_status(session_id, SessionStatus.complete, progress=100, error=error)
        logger.info(f"Session {session_id} complete: {len(samples)} samples")

    except asyncio.CancelledError:
        logger.info(f"Analysis of session {session_id} cancelled")
        raise
    except Exception as e:
        logger.exception(f"Analysis failed for session {session_id}")
        session_store.update_status(session_id, SessionStatus.failed, error=str(e))


# Hold references to background tasks so they aren't garbage-collected,
# keyed by session so a re-run or delete can cancel the one in flight
_background_tasks: dict[str, asyncio.Task] = {}


def start_analysis(session_id: str) -> asyncio.Task:
    cancel_analysis(session_id)
    task = asyncio.create_task(run_analysis(session_id))
    _background_tasks[session_id] = task

    def _forget(t: asyncio.Task) -> None:
        if _background_tasks.get(session_id) is t:
            del _background_tasks[session_id]

    task.add_done_callback(_forget)
    return task


def cancel_analysis(session_id: str) -> bool:
    """Cancel the in-flight analysis of a session; its result is never applied."""
    task = _background_tasks.pop(session_id, None)
    if task is None or task.done():
        return False
    task.cancel()
    return True
