from enum import StrEnum

from pydantic import BaseModel, Field

from alchemist.models.analysis import AnalysisParams


class SessionStatus(StrEnum):
    pending = "pending"
    decoding = "decoding"
    detecting_events = "detecting_events"
    classifying = "classifying"
    complete = "complete"
    failed = "failed"


class Session(BaseModel):
    id: str
    status: SessionStatus = SessionStatus.pending
    title: str | None = None
    filename: str = "original.wav"  # stored upload, relative to the session dir
    created_at: str | None = None
    audio_hash: str | None = None  # sha256 of the uploaded bytes
    params: AnalysisParams = Field(default_factory=AnalysisParams)
    error: str | None = None
    progress: float = 0.0  # 0-100
    sample_rate: int | None = None
    channels: int | None = None
    duration: float | None = None
    transient_count: int = 0
    onset_count: int = 0


class SessionResponse(BaseModel):
    id: str
    status: SessionStatus
    title: str | None = None
    created_at: str | None = None
    params: AnalysisParams
    error: str | None = None
    progress: float = 0.0
    duration: float | None = None
    sample_count: int = 0


class MarkersResponse(BaseModel):
    markers: list[float]


class EnvelopeResponse(BaseModel):
    sample_rate: int
    points: list[float]
