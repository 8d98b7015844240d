"""Edits on detected samples: rename, tags, favorite, split and merge.

Split and merge produce new samples (fresh ids) that replace the originals
in the session's list. When audio is attached the new regions are
reclassified; otherwise they inherit the type of the sample they came from.
"""

import logging
from collections.abc import Sequence

from alchemist.errors import SelectionError
from alchemist.ml.classifier import classify_segment
from alchemist.ml.instrument_map import to_sample_type
from alchemist.models.analysis import SpectrumMode
from alchemist.models.sample import Sample, SampleUpdateRequest

logger = logging.getLogger(__name__)


def rename_sample(sample: Sample, name: str) -> Sample:
    name = name.strip()
    if not name:
        raise ValueError("Sample name cannot be empty")
    sample.name = name
    return sample


def add_tag(sample: Sample, tag: str) -> Sample:
    """Append a tag unless an equal one (ignoring case) is already present."""
    tag = tag.strip()
    if not tag:
        raise ValueError("Tag cannot be empty")
    if tag.lower() not in {t.lower() for t in sample.tags}:
        sample.tags.append(tag)
    return sample


def remove_tag(sample: Sample, tag: str) -> Sample:
    target = tag.strip().lower()
    sample.tags = [t for t in sample.tags if t.lower() != target]
    return sample


def set_favorite(sample: Sample, favorite: bool | None = None) -> Sample:
    """Set the favorite flag, or toggle it when ``favorite`` is None."""
    sample.favorite = (not sample.favorite) if favorite is None else favorite
    return sample


def apply_update(sample: Sample, update: SampleUpdateRequest) -> Sample:
    """Apply a partial update; an invalid field leaves ``sample`` untouched."""
    tags = [] if update.tags is not None else list(sample.tags)
    edited = sample.model_copy(update={"tags": tags})
    if update.name is not None:
        rename_sample(edited, update.name)
    if update.favorite is not None:
        set_favorite(edited, update.favorite)
    for tag in update.tags or []:
        add_tag(edited, tag)

    sample.name = edited.name
    sample.favorite = edited.favorite
    sample.tags = edited.tags
    return sample


def _derived_sample(
    template: Sample, name: str, start: float, duration: float, mode: SpectrumMode
) -> Sample:
    sample = Sample(
        name=name,
        type=template.type,
        instrument=template.instrument,
        start=start,
        duration=duration,
        tags=list(template.tags),
        favorite=template.favorite,
        source=template.source,
    )
    if sample.source is not None:
        label, _ = classify_segment(sample.source, start, duration, mode)
        sample.instrument = label
        sample.type = to_sample_type(label)
    return sample


def split_sample(
    sample: Sample, at: float, mode: SpectrumMode = SpectrumMode.magnitude
) -> tuple[Sample, Sample]:
    """Cut ``sample`` at ``at`` seconds from its start into two adjacent samples."""
    if not 0 < at < sample.duration:
        raise ValueError(f"Split point {at:.3f}s must fall inside the sample (0, {sample.duration:.3f})")

    first = _derived_sample(sample, f"{sample.name} (1)", sample.start, at, mode)
    second = _derived_sample(sample, f"{sample.name} (2)", sample.start + at, sample.duration - at, mode)
    logger.info(f"Split sample {sample.id} at {at:.3f}s")
    return first, second


def merge_samples(samples: Sequence[Sample], mode: SpectrumMode = SpectrumMode.magnitude) -> Sample:
    """Join samples cut from the same recording into one spanning all of them.

    The result runs from the earliest start to the latest end, so any gap
    between the originals is included.
    """
    if len(samples) < 2:
        raise SelectionError("Select at least two samples to merge")

    sources = {id(s.source) for s in samples if s.source is not None}
    if len(sources) > 1:
        raise SelectionError("Cannot merge samples from different recordings")

    ordered = sorted(samples, key=lambda s: s.start)
    first = ordered[0]
    start = first.start
    end = max(s.end for s in ordered)

    source = next((s.source for s in ordered if s.source is not None), None)
    template = first.model_copy(update={"source": source})
    merged = _derived_sample(template, f"{first.name} + {len(ordered) - 1}", start, end - start, mode)
    merged.tags = []
    for s in ordered:
        for tag in s.tags:
            add_tag(merged, tag)
    merged.favorite = any(s.favorite for s in ordered)
    logger.info(f"Merged {len(ordered)} samples into {merged.id}")
    return merged


def replace_samples(
    samples: list[Sample], removed_ids: set[str], replacements: Sequence[Sample]
) -> list[Sample]:
    """Drop ``removed_ids`` and insert ``replacements`` where the first removed sample was."""
    result: list[Sample] = []
    inserted = False
    for sample in samples:
        if sample.id in removed_ids:
            if not inserted:
                result.extend(replacements)
                inserted = True
            continue
        result.append(sample)
    if not inserted:
        result.extend(replacements)
    return result
