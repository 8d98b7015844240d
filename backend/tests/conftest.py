"""
Shared fixtures for the test suite.

Synthetic signals are built in-process so no audio assets are needed.
Every test gets its own storage directory; the session registry is reset
against it before the test runs.
"""

from pathlib import Path

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from alchemist.config import settings
from alchemist.models.buffer import PcmBuffer
from alchemist.models.session import Session
from alchemist.storage.file_manager import file_manager
from alchemist.storage.session_store import session_store

SR = 44100


# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------


def burst_signal(
    sr: int = SR,
    duration: float = 1.0,
    onsets: tuple[float, ...] = (0.0, 0.5),
    burst_s: float = 0.05,
    freq: float = 100.0,
    amp: float = 0.8,
) -> np.ndarray:
    """Silence with a short sine burst starting at each onset."""
    y = np.zeros(int(duration * sr), dtype=np.float32)
    n = int(burst_s * sr)
    t = np.arange(n) / sr
    burst = (amp * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    for onset in onsets:
        start = int(onset * sr)
        end = min(len(y), start + n)
        y[start:end] = burst[: end - start]
    return y


def write_session_audio(session_id: str, filename: str, buffer: PcmBuffer) -> Path:
    path = file_manager.audio_path(session_id, filename)
    sf.write(str(path), buffer.data.T, buffer.sample_rate)
    return path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Point storage at a fresh temp directory and reload the registry from it."""
    monkeypatch.setattr(settings, "storage_dir", tmp_path / "storage")
    session_store.reset()
    return tmp_path / "storage"


@pytest.fixture
def two_burst_buffer() -> PcmBuffer:
    """1 s mono buffer with 50 ms bursts at 0.0 s and 0.5 s."""
    return PcmBuffer(data=burst_signal(), sample_rate=SR)


@pytest.fixture
def silent_buffer() -> PcmBuffer:
    return PcmBuffer(data=np.zeros(SR, dtype=np.float32), sample_rate=SR)


@pytest.fixture
def stereo_buffer() -> PcmBuffer:
    left = burst_signal()
    return PcmBuffer(data=np.stack([left, -0.5 * left]), sample_rate=SR)


@pytest.fixture
def write_audio():
    return write_session_audio


@pytest.fixture
def stored_session(two_burst_buffer) -> Session:
    """A session whose upload is written to disk, not yet analyzed."""
    session = session_store.create(Session(id="session-1", title="drums.wav"))
    write_session_audio(session.id, session.filename, two_burst_buffer)
    return session


@pytest.fixture
def started(monkeypatch) -> list[str]:
    """Record analysis starts instead of spawning background tasks."""
    calls: list[str] = []
    monkeypatch.setattr("alchemist.routers.upload.start_analysis", calls.append)
    monkeypatch.setattr("alchemist.routers.sessions.start_analysis", calls.append)
    return calls


@pytest.fixture
def client(started) -> TestClient:
    from alchemist.main import app

    return TestClient(app)
