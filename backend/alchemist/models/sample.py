import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from alchemist.errors import AlchemistError, AnalysisError
from alchemist.models.buffer import PcmBuffer


class SampleType(StrEnum):
    kick = "kick"
    snare = "snare"
    hihat = "hihat"
    melody = "melody"
    bass = "bass"
    other = "other"


class InstrumentLabel(StrEnum):
    kick = "kick"
    snare = "snare"
    hihat = "hihat"
    bass = "bass"
    piano = "piano"
    guitar = "guitar"
    synth = "synth"
    other = "other"


class Sample(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: SampleType
    instrument: InstrumentLabel = InstrumentLabel.other  # raw classifier label
    start: float = Field(ge=0)  # seconds
    duration: float = Field(gt=0)  # seconds
    tags: list[str] = Field(default_factory=list)  # unique, insertion order
    favorite: bool = False
    # Shared with every sample cut from the same file; never serialized
    source: PcmBuffer | None = Field(default=None, exclude=True, repr=False)

    @property
    def end(self) -> float:
        return self.start + self.duration

    def require_source(self, error_cls: type[AlchemistError] = AnalysisError) -> PcmBuffer:
        """Return the attached audio or raise ``error_cls`` if it was never re-attached."""
        if self.source is None:
            raise error_cls(f"Sample '{self.name}' has no audio attached")
        return self.source


class SampleUpdateRequest(BaseModel):
    name: str | None = None
    favorite: bool | None = None
    tags: list[str] | None = None


class TagRequest(BaseModel):
    tag: str


class SplitRequest(BaseModel):
    at: float = Field(gt=0)  # seconds from the sample's start


class MergeRequest(BaseModel):
    sample_ids: list[str]
