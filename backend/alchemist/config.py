from pathlib import Path

from pydantic_settings import BaseSettings

from alchemist.models.analysis import SpectrumMode


class Settings(BaseSettings):
    storage_dir: Path = Path("./storage")
    frontend_url: str = "http://localhost:3000"

    # Analysis defaults used when an upload omits a parameter
    default_sensitivity: float = 50.0
    default_min_length_ms: float = 100.0
    default_attack_ms: float = 10.0
    default_release_ms: float = 100.0

    spectrum_mode: SpectrumMode = SpectrumMode.magnitude
    strict_export_formats: bool = False
    envelope_points: int = 512

    model_config = {"env_file": "../.env", "env_file_encoding": "utf-8"}

    @property
    def sessions_dir(self) -> Path:
        return self.storage_dir / "sessions"


settings = Settings()
