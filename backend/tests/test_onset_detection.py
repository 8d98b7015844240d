"""
Tests for alchemist/services/onset_detection.py and event_fusion.py.

Tests cover:
    - Transient rule: rise above previous window AND above twice the threshold
    - Half-wave rectified onset flux on 20 ms / 10 ms windows
    - Detectors are ascending and restartable
    - Fusion: sort, keep events at least min_gap after the last kept one
"""

import numpy as np
import pytest

from alchemist.services.event_fusion import fuse_events
from alchemist.services.onset_detection import (
    OnsetDetector,
    TransientDetector,
    detect_onsets,
    detect_transients,
)

SR = 1000  # 10-sample energy windows, 20-sample flux windows, 10-sample hop


def _step(level: float = 0.5, at: int = 100, length: int = 1000) -> np.ndarray:
    y = np.zeros(length, dtype=np.float32)
    y[at:] = level
    return y


# ---------------------------------------------------------------------------
# Transients
# ---------------------------------------------------------------------------


class TestTransientDetector:
    def test_silence_has_no_transients(self):
        assert detect_transients(np.zeros(1000), SR, 0.05) == []

    def test_step_marks_window_start(self):
        assert detect_transients(_step(), SR, 0.05) == [pytest.approx(0.1)]

    def test_requires_twice_the_threshold(self):
        """A 0.08 rise clears thr=0.05 but not 2 * thr = 0.1."""
        assert detect_transients(_step(level=0.08), SR, 0.05) == []

    def test_requires_rise_over_previous_window(self):
        """A second, equal-level window is not another transient."""
        y = _step()
        y[500:] = 0.52
        assert detect_transients(y, SR, 0.05) == [pytest.approx(0.1)]

    def test_restartable(self):
        detector = TransientDetector(_step(), SR, 0.05)
        assert list(detector) == list(detector)

    def test_ascending(self):
        y = np.zeros(1000, dtype=np.float32)
        y[100:200] = 0.5
        y[400:500] = 0.9
        times = detect_transients(y, SR, 0.05)
        assert times == sorted(times)
        assert len(times) == 2


# ---------------------------------------------------------------------------
# Onsets
# ---------------------------------------------------------------------------


class TestOnsetDetector:
    def test_silence_has_no_onsets(self):
        assert detect_onsets(np.zeros(1000), SR, 0.05) == []

    def test_step_fires_on_overlapping_windows(self):
        """Windows at 90 and 100 each see ten new 0.5 samples (flux 5.0)."""
        assert detect_onsets(_step(), SR, 0.05) == [pytest.approx(0.09), pytest.approx(0.1)]

    def test_threshold_above_flux_suppresses(self):
        assert detect_onsets(_step(), SR, 5.0) == []

    def test_decreases_do_not_count(self):
        """A falling edge is half-wave rectified away."""
        y = np.full(1000, 0.5, dtype=np.float32)
        y[500:] = 0.0
        assert detect_onsets(y, SR, 0.05) == [0.0]

    def test_restartable(self):
        detector = OnsetDetector(_step(), SR, 0.05)
        first = list(detector)
        assert first == list(detector)
        assert first


# ---------------------------------------------------------------------------
# Fusion
# ---------------------------------------------------------------------------


class TestFuseEvents:
    def test_merges_and_drops_close_events(self):
        fused = fuse_events([0.0, 0.5], [0.02, 0.49, 1.0], 0.1)
        assert fused == [0.0, 0.49, 1.0]

    def test_compares_with_last_kept_event(self):
        """0.18 is 0.12 after dropped 0.06 but only 0.06 after kept 0.12."""
        assert fuse_events([0.0, 0.06, 0.12, 0.18], [], 0.1) == [0.0, 0.12]

    def test_gap_boundary_is_inclusive(self):
        assert fuse_events([0.0], [0.25], 0.25) == [0.0, 0.25]

    def test_zero_gap_drops_coincident_events(self):
        assert fuse_events([0.0, 0.5], [0.5, 0.7], 0.0) == [0.0, 0.5, 0.7]

    def test_unsorted_input(self):
        assert fuse_events([0.8, 0.2], [0.5], 0.1) == [0.2, 0.5, 0.8]

    def test_empty(self):
        assert fuse_events([], [], 0.1) == []

    def test_spacing_invariant(self):
        rng = np.random.default_rng(7)
        transients = sorted(rng.uniform(0, 5, 40).tolist())
        onsets = sorted(rng.uniform(0, 5, 40).tolist())
        fused = fuse_events(transients, onsets, 0.1)
        assert fused[0] == min(transients + onsets)
        assert all(b - a >= 0.1 for a, b in zip(fused, fused[1:]))
