"""
Tests for alchemist/storage: session registry, persistence and audio re-attachment.
"""

import json

import pytest

from alchemist.errors import ExportError
from alchemist.models.export import ExportSettings
from alchemist.models.sample import Sample, SampleType
from alchemist.models.session import Session, SessionStatus
from alchemist.services.exporter import export_sample_entity
from alchemist.storage.file_manager import file_manager
from alchemist.storage.session_store import session_store


def _samples(buffer) -> list[Sample]:
    return [
        Sample(name="Kick Sample 1", type=SampleType.kick, start=0.0, duration=0.5, tags=["dry"], source=buffer),
        Sample(name="Snare Sample 2", type=SampleType.snare, start=0.5, duration=0.5, source=buffer),
    ]


class TestSessionLifecycle:
    def test_create_and_get(self):
        session_store.create(Session(id="s1"))
        assert session_store.get("s1").status == SessionStatus.pending
        assert file_manager.session_json_path("s1").exists()

    def test_update_status_persists(self):
        session_store.create(Session(id="s1"))
        session_store.update_status("s1", SessionStatus.failed, error="boom")
        data = json.loads(file_manager.session_json_path("s1").read_text())
        assert data["status"] == "failed"
        assert data["error"] == "boom"

    def test_update_status_keeps_error_when_none(self):
        session_store.create(Session(id="s1", error="earlier"))
        session_store.update_status("s1", SessionStatus.complete, progress=100)
        assert session_store.get("s1").error == "earlier"

    def test_update_unknown_session(self):
        assert session_store.update_status("nope", SessionStatus.complete) is None

    def test_list_newest_first(self):
        session_store.create(Session(id="old", created_at="2024-01-01T00:00:00"))
        session_store.create(Session(id="new", created_at="2025-01-01T00:00:00"))
        assert [s.id for s in session_store.list_all()] == ["new", "old"]

    def test_reload_from_disk(self):
        session_store.create(Session(id="s1", title="drums.wav"))
        session_store.reset()
        assert session_store.get("s1").title == "drums.wav"

    def test_corrupt_session_json_skipped(self):
        session_store.create(Session(id="good"))
        file_manager.session_json_path("bad").write_text("{not json")
        session_store.reset()
        assert session_store.get("good") is not None
        assert session_store.get("bad") is None

    def test_delete_removes_files(self):
        session_store.create(Session(id="s1"))
        session_dir = file_manager.session_dir("s1")
        assert session_store.delete("s1") is True
        assert session_store.get("s1") is None
        assert not session_dir.exists()


class TestResults:
    def test_samples_round_trip_with_audio(self, stored_session, two_burst_buffer):
        session_store.save_results(stored_session.id, _samples(two_burst_buffer), [0.0, 0.5])
        session_store.reset()

        samples = session_store.get_samples(stored_session.id)
        assert [s.name for s in samples] == ["Kick Sample 1", "Snare Sample 2"]
        assert samples[0].tags == ["dry"]
        assert samples[0].source is not None
        assert samples[0].source is samples[1].source
        assert session_store.get_markers(stored_session.id) == [0.0, 0.5]

    def test_samples_file_has_no_audio(self, stored_session, two_burst_buffer):
        session_store.save_samples(stored_session.id, _samples(two_burst_buffer))
        data = json.loads(file_manager.samples_path(stored_session.id).read_text())
        assert all("source" not in s for s in data)

    def test_missing_upload_leaves_samples_without_audio(self, two_burst_buffer):
        session_store.create(Session(id="s1"))
        session_store.save_samples("s1", _samples(two_burst_buffer))
        session_store.reset()

        samples = session_store.get_samples("s1")
        assert len(samples) == 2
        assert all(s.source is None for s in samples)
        with pytest.raises(ExportError):
            export_sample_entity(samples[0], ExportSettings())

    def test_get_sample(self, stored_session, two_burst_buffer):
        samples = _samples(two_burst_buffer)
        session_store.save_samples(stored_session.id, samples)
        assert session_store.get_sample(stored_session.id, samples[1].id) is samples[1]
        assert session_store.get_sample(stored_session.id, "missing") is None

    def test_count_samples_from_file(self, stored_session, two_burst_buffer):
        session_store.save_samples(stored_session.id, _samples(two_burst_buffer))
        session_store.reset()
        assert session_store.count_samples(stored_session.id) == 2
        assert session_store.count_samples("missing") == 0

    def test_clear_results_keeps_upload(self, stored_session, two_burst_buffer):
        session_store.save_results(stored_session.id, _samples(two_burst_buffer), [0.0])
        session_store.clear_results(stored_session.id)
        assert session_store.get_samples(stored_session.id) == []
        assert session_store.get_markers(stored_session.id) == []
        assert file_manager.audio_path(stored_session.id, stored_session.filename).exists()

    def test_buffer_decoded_from_upload(self, stored_session):
        buffer = session_store.get_buffer(stored_session.id)
        assert buffer.sample_rate == 44100
        assert buffer.length == 44100
        assert session_store.get_buffer(stored_session.id) is buffer
