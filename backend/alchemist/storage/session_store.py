"""Session registry persisted as JSON next to each uploaded file.

Samples are written without their audio. The decoded buffer lives only in
memory; after a restart it is re-decoded from the stored upload the first
time a session's samples are loaded. If that fails, samples come back with
``source=None`` and audio operations on them raise.
"""

import json
import logging

from alchemist.config import settings
from alchemist.errors import DecodeError
from alchemist.models.buffer import PcmBuffer
from alchemist.models.sample import Sample
from alchemist.models.session import Session, SessionStatus
from alchemist.services.audio_loader import load_audio
from alchemist.storage.file_manager import file_manager

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._samples: dict[str, list[Sample]] = {}
        self._buffers: dict[str, PcmBuffer] = {}
        self._load_from_disk()

    def _persist(self, session: Session) -> None:
        path = file_manager.session_json_path(session.id)
        path.write_text(json.dumps(session.model_dump(mode="json"), indent=2))

    def _load_from_disk(self) -> None:
        sessions_dir = settings.sessions_dir
        if not sessions_dir.exists():
            return
        for session_dir in sessions_dir.iterdir():
            session_json = session_dir / "session.json"
            if not session_json.exists():
                continue
            try:
                session = Session(**json.loads(session_json.read_text()))
                self._sessions[session.id] = session
            except Exception:
                logger.warning(f"Failed to load session from {session_json}", exc_info=True)

    def reset(self) -> None:
        """Forget everything held in memory and reload from the storage directory."""
        self._sessions.clear()
        self._samples.clear()
        self._buffers.clear()
        self._load_from_disk()

    def create(self, session: Session) -> Session:
        self._sessions[session.id] = session
        self._persist(session)
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def update_status(
        self,
        session_id: str,
        status: SessionStatus,
        progress: float = 0.0,
        error: str | None = None,
    ) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        session.status = status
        session.progress = progress
        if error is not None:
            session.error = error
        self._persist(session)
        return session

    def list_all(self) -> list[Session]:
        """All sessions, newest first."""
        sessions = list(self._sessions.values())
        sessions.sort(key=lambda s: s.created_at or "", reverse=True)
        return sessions

    def delete(self, session_id: str) -> bool:
        existed = self._sessions.pop(session_id, None) is not None
        self._samples.pop(session_id, None)
        self._buffers.pop(session_id, None)
        file_manager.delete_session(session_id)
        return existed

    # --- audio ---

    def attach_buffer(self, session_id: str, buffer: PcmBuffer) -> None:
        self._buffers[session_id] = buffer

    def get_buffer(self, session_id: str) -> PcmBuffer | None:
        """The decoded audio of a session, re-decoding the upload when not cached."""
        buffer = self._buffers.get(session_id)
        if buffer is not None:
            return buffer
        session = self._sessions.get(session_id)
        if session is None:
            return None
        try:
            buffer = load_audio(file_manager.audio_path(session_id, session.filename))
        except DecodeError as e:
            logger.warning(f"Cannot re-attach audio for session {session_id}: {e}")
            return None
        self._buffers[session_id] = buffer
        return buffer

    # --- analysis results ---

    def save_results(self, session_id: str, samples: list[Sample], markers: list[float]) -> None:
        self.save_samples(session_id, samples)
        file_manager.markers_path(session_id).write_text(json.dumps(markers))

    def save_samples(self, session_id: str, samples: list[Sample]) -> None:
        self._samples[session_id] = samples
        data = [s.model_dump(mode="json") for s in samples]
        file_manager.samples_path(session_id).write_text(json.dumps(data, indent=2))

    def get_samples(self, session_id: str) -> list[Sample]:
        samples = self._samples.get(session_id)
        if samples is not None:
            return samples

        path = file_manager.samples_path(session_id)
        if not path.exists():
            return []
        samples = [Sample(**s) for s in json.loads(path.read_text())]
        buffer = self.get_buffer(session_id)
        for sample in samples:
            sample.source = buffer
        self._samples[session_id] = samples
        return samples

    def count_samples(self, session_id: str) -> int:
        """Number of samples, read without decoding the session's audio."""
        samples = self._samples.get(session_id)
        if samples is not None:
            return len(samples)
        path = file_manager.samples_path(session_id)
        if not path.exists():
            return 0
        return len(json.loads(path.read_text()))

    def get_sample(self, session_id: str, sample_id: str) -> Sample | None:
        return next((s for s in self.get_samples(session_id) if s.id == sample_id), None)

    def get_markers(self, session_id: str) -> list[float]:
        path = file_manager.markers_path(session_id)
        if not path.exists():
            return []
        return json.loads(path.read_text())

    def clear_results(self, session_id: str) -> None:
        self._samples.pop(session_id, None)
        file_manager.clear_results(session_id)


session_store = SessionStore()
