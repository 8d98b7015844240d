"""Heuristic instrument classifier.

Four features per segment feed a fixed decision list. Rules are checked
top to bottom and the first match wins, so earlier rules take priority
(a short, dark hit is a kick even if it would also pass the bass rule).
"""

import logging
from dataclasses import dataclass

import numpy as np

from alchemist.errors import AnalysisError
from alchemist.ml.feature_extractor import (
    attack_time,
    harmonicity,
    magnitude_spectrum,
    slice_segment,
    spectral_centroid,
    spectral_flux,
)
from alchemist.models.analysis import SpectrumMode
from alchemist.models.buffer import PcmBuffer
from alchemist.models.sample import InstrumentLabel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstrumentFeatures:
    centroid: float  # Hz
    flux: float
    attack_time: float  # seconds
    harmonicity: float


def extract_features(
    y: np.ndarray, sr: int, mode: SpectrumMode = SpectrumMode.magnitude
) -> InstrumentFeatures:
    """Compute the classifier features of one segment."""
    if len(y) == 0:
        raise AnalysisError("Cannot classify an empty segment")

    magnitudes = magnitude_spectrum(y, mode)
    return InstrumentFeatures(
        centroid=spectral_centroid(magnitudes, sr),
        flux=spectral_flux(y, sr, mode),
        attack_time=attack_time(y, sr),
        harmonicity=harmonicity(magnitudes),
    )


def classify_features(f: InstrumentFeatures) -> InstrumentLabel:
    if f.centroid < 500 and f.attack_time < 0.05:
        return InstrumentLabel.kick
    if f.centroid > 3000 and f.attack_time < 0.03:
        return InstrumentLabel.hihat
    if 500 < f.centroid < 2000 and f.attack_time < 0.08:
        return InstrumentLabel.snare
    if f.centroid < 500 and f.attack_time > 0.1 and f.harmonicity > 0.7:
        return InstrumentLabel.bass
    if f.harmonicity > 0.8 and f.flux < 0.3 and f.centroid > 800:
        return InstrumentLabel.piano
    if 0.6 < f.harmonicity < 0.8 and f.flux > 0.3:
        return InstrumentLabel.guitar
    if f.flux > 0.5 or (f.centroid > 2000 and f.harmonicity < 0.6):
        return InstrumentLabel.synth
    return InstrumentLabel.other


def classify_segment(
    buffer: PcmBuffer,
    start_time: float,
    duration: float,
    mode: SpectrumMode = SpectrumMode.magnitude,
) -> tuple[InstrumentLabel, InstrumentFeatures]:
    """Classify ``[start_time, start_time + duration)`` of the buffer's first channel.

    Returns (label, features).
    """
    segment = slice_segment(buffer.mono, buffer.sample_rate, start_time, duration)
    features = extract_features(segment, buffer.sample_rate, mode)
    label = classify_features(features)
    logger.debug(f"Segment {start_time:.3f}s+{duration:.3f}s → {label} ({features})")
    return label, features
