"""
Tests for alchemist/services/segmenter.py and the pure analysis pass in pipeline.py.

Tests cover:
    - Segment bounds from consecutive events, 0.5 s for the last one
    - Skipping segments under half the minimum length, with dense ordinals
    - Non-overlap and ordering of emitted samples
    - End-to-end: two bursts → two samples; silence → none
"""

import numpy as np
import pytest

from alchemist.models.analysis import AnalysisParams
from alchemist.models.buffer import PcmBuffer
from alchemist.models.sample import SampleType
from alchemist.services.pipeline import analyze_buffer, compute_envelope, detect_events
from alchemist.services.segmenter import LAST_SEGMENT_DURATION, candidate_segments, segment_events

# ---------------------------------------------------------------------------
# candidate_segments
# ---------------------------------------------------------------------------


class TestCandidateSegments:
    def test_consecutive_events_bound_segments(self):
        segments = candidate_segments([0.0, 0.3, 0.8], 100)
        assert segments == [
            (0.0, pytest.approx(0.3)),
            (0.3, pytest.approx(0.5)),
            (0.8, LAST_SEGMENT_DURATION),
        ]

    def test_short_segment_skipped(self):
        """20 ms < 100 ms / 2 → dropped; its neighbour keeps its own bounds."""
        segments = candidate_segments([0.0, 0.02, 0.5], 100)
        assert [s for s, _ in segments] == [0.02, 0.5]
        assert segments[0][1] == pytest.approx(0.48)

    def test_exactly_half_min_length_kept(self):
        segments = candidate_segments([0.0, 0.05], 100)
        assert len(segments) == 2

    def test_last_segment_skipped_when_min_length_large(self):
        """A 0.5 s tail is shorter than half of 1200 ms."""
        assert candidate_segments([0.0], 1200) == []

    def test_no_events(self):
        assert candidate_segments([], 100) == []


# ---------------------------------------------------------------------------
# segment_events
# ---------------------------------------------------------------------------


class TestSegmentEvents:
    def test_ordinals_are_dense(self, two_burst_buffer):
        samples = segment_events(two_burst_buffer, [0.0, 0.01, 0.5], 100)
        assert len(samples) == 2
        assert samples[0].name.endswith("Sample 1")
        assert samples[1].name.endswith("Sample 2")

    def test_name_uses_raw_label(self, two_burst_buffer):
        sample = segment_events(two_burst_buffer, [0.0], 100)[0]
        assert sample.name == f"{sample.instrument.value.capitalize()} Sample 1"

    def test_samples_share_buffer(self, two_burst_buffer):
        samples = segment_events(two_burst_buffer, [0.0, 0.5], 100)
        assert all(s.source is two_burst_buffer for s in samples)

    def test_ordered_and_non_overlapping(self, two_burst_buffer):
        samples = segment_events(two_burst_buffer, [0.0, 0.2, 0.45, 0.7], 100)
        for a, b in zip(samples, samples[1:]):
            assert a.start < b.start
            assert a.end <= b.start + 1e-9

    def test_no_events_no_samples(self, two_burst_buffer):
        assert segment_events(two_burst_buffer, [], 100) == []


# ---------------------------------------------------------------------------
# analyze_buffer
# ---------------------------------------------------------------------------


class TestAnalyzeBuffer:
    def test_two_bursts_give_two_samples(self, two_burst_buffer):
        result = analyze_buffer(two_burst_buffer, AnalysisParams(sensitivity=50, min_length_ms=100))
        assert len(result.samples) == 2
        first, second = result.samples
        assert first.start == 0.0
        assert second.start - first.start >= 0.1
        assert second.start == pytest.approx(0.5, abs=0.02)
        assert second.duration == LAST_SEGMENT_DURATION
        assert all(s.type in SampleType for s in result.samples)

    def test_result_metadata(self, two_burst_buffer):
        result = analyze_buffer(two_burst_buffer, AnalysisParams())
        assert result.sample_rate == 44100
        assert result.channels == 1
        assert result.duration == pytest.approx(1.0)
        assert result.transient_count == 2
        assert result.onset_count >= 2
        assert result.markers == [s.start for s in result.samples]

    def test_silence_gives_no_samples(self, silent_buffer):
        result = analyze_buffer(silent_buffer, AnalysisParams())
        assert result.samples == []
        assert result.markers == []

    def test_stereo_analyzes_first_channel(self, stereo_buffer, two_burst_buffer):
        stereo = analyze_buffer(stereo_buffer, AnalysisParams())
        mono = analyze_buffer(two_burst_buffer, AnalysisParams())
        assert stereo.markers == mono.markers
        assert stereo.channels == 2

    def test_explicit_threshold_overrides_sensitivity(self, two_burst_buffer):
        """A threshold of 0.5 hides every transient of the 0.8-peak bursts."""
        transients, _, _ = detect_events(two_burst_buffer, AnalysisParams(sensitivity=100, threshold=0.5))
        assert transients == []

    def test_min_gap_collapses_bursts(self, two_burst_buffer):
        _, _, markers = detect_events(two_burst_buffer, AnalysisParams(min_length_ms=500))
        assert markers == [0.0, pytest.approx(0.5)]


class TestComputeEnvelope:
    def test_point_count(self, two_burst_buffer):
        points = compute_envelope(two_burst_buffer, AnalysisParams(), 100)
        assert len(points) == 100
        assert max(points) > 0.1

    def test_silence(self, silent_buffer):
        assert set(compute_envelope(silent_buffer, AnalysisParams(), 16)) == {0.0}


def test_analysis_does_not_mutate_buffer(two_burst_buffer):
    before = two_burst_buffer.data.copy()
    analyze_buffer(two_burst_buffer, AnalysisParams())
    np.testing.assert_array_equal(two_burst_buffer.data, before)


def test_buffer_shorter_than_a_window_yields_no_samples():
    """A buffer shorter than one detection window is analyzed to nothing."""
    buffer = PcmBuffer(np.ones(100, dtype=np.float32), 44100)
    assert analyze_buffer(buffer, AnalysisParams()).samples == []
