from enum import StrEnum

from pydantic import BaseModel, Field

from alchemist.models.sample import Sample


class SpectrumMode(StrEnum):
    magnitude = "magnitude"  # |x[n]| of the window stands in for bin magnitudes
    fft = "fft"  # librosa STFT magnitude; classifier thresholds are not tuned for it


def sensitivity_to_threshold(sensitivity: float) -> float:
    """Map the 0-100 sensitivity slider to a detector threshold.

    Higher sensitivity means a lower threshold and more detections.
    """
    if not 0 <= sensitivity <= 100:
        raise ValueError(f"Sensitivity must be within 0-100, got {sensitivity}")
    return (100 - sensitivity) / 1000


class AnalysisParams(BaseModel):
    sensitivity: float = Field(50.0, ge=0, le=100)
    attack_ms: float = Field(10.0, ge=1, le=100)  # envelope follower attack
    release_ms: float = Field(100.0, ge=10, le=500)  # envelope follower release
    threshold: float | None = Field(None, ge=0.01, le=0.5)
    min_length_ms: float = Field(100.0, ge=10, le=500)

    def detection_threshold(self) -> float:
        """The only place sensitivity is converted; detectors get the result as-is."""
        if self.threshold is not None:
            return self.threshold
        return sensitivity_to_threshold(self.sensitivity)

    @property
    def min_gap(self) -> float:
        """Minimum spacing between fused events, in seconds."""
        return self.min_length_ms / 1000.0


class AnalysisResult(BaseModel):
    samples: list[Sample]
    markers: list[float]  # fused event times (seconds)
    transient_count: int = 0
    onset_count: int = 0
    duration: float = 0.0
    sample_rate: int = 0
    channels: int = 0
