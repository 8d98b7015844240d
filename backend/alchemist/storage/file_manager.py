import shutil
from pathlib import Path

from alchemist.config import settings


class FileManager:
    def session_dir(self, session_id: str) -> Path:
        d = settings.sessions_dir / session_id
        d.mkdir(parents=True, exist_ok=True)
        return d

    def audio_path(self, session_id: str, filename: str) -> Path:
        return self.session_dir(session_id) / filename

    def session_json_path(self, session_id: str) -> Path:
        return self.session_dir(session_id) / "session.json"

    def samples_path(self, session_id: str) -> Path:
        return self.session_dir(session_id) / "samples.json"

    def markers_path(self, session_id: str) -> Path:
        return self.session_dir(session_id) / "markers.json"

    def clear_results(self, session_id: str) -> None:
        """Delete analysis output, keeping the uploaded audio."""
        for path in (self.samples_path(session_id), self.markers_path(session_id)):
            path.unlink(missing_ok=True)

    def delete_session(self, session_id: str) -> None:
        d = settings.sessions_dir / session_id
        if d.exists():
            shutil.rmtree(d)


file_manager = FileManager()
