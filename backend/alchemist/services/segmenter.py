"""Turn fused event times into classified, non-overlapping samples."""

import logging
from collections.abc import Sequence

from alchemist.ml.classifier import classify_segment
from alchemist.ml.instrument_map import INSTRUMENT_NAMES, to_sample_type
from alchemist.models.analysis import SpectrumMode
from alchemist.models.buffer import PcmBuffer
from alchemist.models.sample import Sample

logger = logging.getLogger(__name__)

# The last event has no successor to bound it
LAST_SEGMENT_DURATION = 0.5


def candidate_segments(events: Sequence[float], min_length_ms: float) -> list[tuple[float, float]]:
    """(start, duration) for each event, minus segments shorter than half ``min_length_ms``."""
    segments: list[tuple[float, float]] = []
    for i, start in enumerate(events):
        duration = events[i + 1] - start if i < len(events) - 1 else LAST_SEGMENT_DURATION
        if duration <= 0 or duration * 1000.0 < min_length_ms / 2:
            logger.debug(f"Skipping {duration * 1000:.1f} ms segment at {start:.3f}s")
            continue
        segments.append((start, duration))
    return segments


def segment_events(
    buffer: PcmBuffer,
    events: Sequence[float],
    min_length_ms: float,
    mode: SpectrumMode = SpectrumMode.magnitude,
) -> list[Sample]:
    """Build one named, classified sample per surviving segment.

    Ordinals in the names are dense: they count emitted samples, so a
    skipped segment does not leave a gap in the numbering.
    """
    samples: list[Sample] = []
    for ordinal, (start, duration) in enumerate(candidate_segments(events, min_length_ms), 1):
        label, _ = classify_segment(buffer, start, duration, mode)
        samples.append(
            Sample(
                name=f"{INSTRUMENT_NAMES[label]} Sample {ordinal}",
                type=to_sample_type(label),
                instrument=label,
                start=start,
                duration=duration,
                source=buffer,
            )
        )
    logger.info(f"Segmented {len(events)} events into {len(samples)} samples")
    return samples
