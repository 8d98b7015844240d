from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class ExportFormat(StrEnum):
    wav = "wav"
    mp3 = "mp3"
    ogg = "ogg"
    flac = "flac"


class ExportSettings(BaseModel):
    format: ExportFormat = ExportFormat.wav
    sample_rate: int | None = Field(44100, ge=8000, le=192000)  # None keeps the source rate
    bit_depth: Literal[16, 24, 32] = 16
    normalize: bool = True
    naming_pattern: str = "{type}_{index}_{name}"


class BatchExportRequest(BaseModel):
    sample_ids: list[str]
    settings: ExportSettings = Field(default_factory=ExportSettings)


@dataclass(frozen=True)
class ExportedAudio:
    """Encoded bytes plus what was actually produced (which may differ from the request)."""

    data: bytes
    format: ExportFormat
    sample_rate: int
    channels: int
    frames: int

    @property
    def media_type(self) -> str:
        return MEDIA_TYPES[self.format]


MEDIA_TYPES: dict[ExportFormat, str] = {
    ExportFormat.wav: "audio/wav",
    ExportFormat.mp3: "audio/mpeg",
    ExportFormat.ogg: "audio/ogg",
    ExportFormat.flac: "audio/flac",
}
