"""Transient and onset detection over a mono PCM buffer.

Both detectors scan the buffer once, front to back, so their timestamps come
out in ascending order. They are plain iterables: each ``iter()`` starts a
fresh scan, nothing is computed until the caller consumes it.

The threshold handed in is already converted from sensitivity (see
``AnalysisParams.detection_threshold``); detectors never convert it again.
"""

import logging
from collections.abc import Iterator

import numpy as np

from alchemist.ml.feature_extractor import (
    ENERGY_WINDOW_S,
    FLUX_HOP_S,
    FLUX_WINDOW_S,
    frame_starts,
    magnitude_spectrum,
    window_size,
    windowed_rms,
)
from alchemist.models.analysis import SpectrumMode

logger = logging.getLogger(__name__)


class TransientDetector:
    """Energy-jump detector on consecutive 10 ms RMS windows.

    A window is a transient when its energy rises more than ``threshold``
    above the previous window and is also above ``2 * threshold``.
    """

    def __init__(self, y: np.ndarray, sr: int, threshold: float):
        self.y = y
        self.sr = sr
        self.threshold = threshold

    def __iter__(self) -> Iterator[float]:
        window = window_size(self.sr, ENERGY_WINDOW_S)
        prev_energy = 0.0
        for index, energy in enumerate(windowed_rms(self.y, window)):
            if energy > prev_energy + self.threshold and energy > self.threshold * 2:
                yield index * window / self.sr
            prev_energy = energy


class OnsetDetector:
    """Half-wave rectified flux on 20 ms windows hopped every 10 ms.

    Only increases in per-bin magnitude count towards the flux; a window
    whose flux exceeds ``threshold`` marks an onset at its start.
    """

    def __init__(
        self,
        y: np.ndarray,
        sr: int,
        threshold: float,
        mode: SpectrumMode = SpectrumMode.magnitude,
    ):
        self.y = y
        self.sr = sr
        self.threshold = threshold
        self.mode = mode

    def __iter__(self) -> Iterator[float]:
        window = window_size(self.sr, FLUX_WINDOW_S)
        hop = window_size(self.sr, FLUX_HOP_S)
        prev: np.ndarray | None = None
        for start in frame_starts(len(self.y), window, hop):
            spectrum = magnitude_spectrum(self.y[start : start + window], self.mode)
            if prev is None:
                prev = np.zeros_like(spectrum)
            flux = float(np.sum(np.maximum(spectrum - prev, 0.0)))
            if flux > self.threshold:
                yield start / self.sr
            prev = spectrum


def detect_transients(y: np.ndarray, sr: int, threshold: float) -> list[float]:
    transients = list(TransientDetector(y, sr, threshold))
    logger.info(f"Detected {len(transients)} transients (threshold={threshold:.3f})")
    return transients


def detect_onsets(
    y: np.ndarray,
    sr: int,
    threshold: float,
    mode: SpectrumMode = SpectrumMode.magnitude,
) -> list[float]:
    onsets = list(OnsetDetector(y, sr, threshold, mode))
    logger.info(f"Detected {len(onsets)} onsets (threshold={threshold:.3f})")
    return onsets
