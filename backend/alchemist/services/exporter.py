"""Render sample regions to audio files.

WAV is the only encoder. A request for mp3/ogg/flac, or for a bit depth
other than 16, is served as 16-bit WAV and logged; ``ExportedAudio.format``
always names what was really written. With ``strict_export_formats`` enabled
such requests raise ``ExportError`` instead.
"""

import io
import json
import logging
import re
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass

import librosa
import numpy as np

from alchemist.config import settings as app_settings
from alchemist.errors import ExportError, SelectionError
from alchemist.models.buffer import PcmBuffer
from alchemist.models.export import ExportedAudio, ExportFormat, ExportSettings
from alchemist.models.sample import Sample
from alchemist.services.naming import apply_naming_pattern
from alchemist.services.wav_writer import BITS_PER_SAMPLE, encode_wav

logger = logging.getLogger(__name__)

# Peaks at or above this are left alone rather than pushed to full scale
NORMALIZE_SKIP_PEAK = 0.99

# Stripped from export filenames: header quoting and ZIP entry paths
_UNSAFE_FILENAME_CHARS = re.compile(r'["/\\]')


@dataclass
class ExportResult:
    sample_id: str
    filename: str
    audio: ExportedAudio | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.audio is not None


def normalize_peak(data: np.ndarray) -> np.ndarray:
    """Scale a copy of ``data`` so its absolute peak reaches 1.0.

    Silent input and input already peaking at 0.99 or more come back unscaled.
    """
    out = np.array(data, dtype=np.float32, copy=True)
    peak = float(np.max(np.abs(out))) if out.size else 0.0
    if peak == 0.0 or peak >= NORMALIZE_SKIP_PEAK:
        return out
    return out * np.float32(1.0 / peak)


def render_region(buffer: PcmBuffer, start_time: float, duration: float) -> np.ndarray:
    """Copy ``floor(duration * sr)`` frames of every channel, zero-padded past the end."""
    if start_time < 0 or duration < 0:
        raise ExportError(f"Invalid region: start={start_time}, duration={duration}")

    length = int(duration * buffer.sample_rate)
    start = int(start_time * buffer.sample_rate)
    region = np.zeros((buffer.num_channels, length), dtype=np.float32)
    available = max(0, min(length, buffer.length - start))
    if available > 0:
        region[:, :available] = buffer.data[:, start : start + available]
    return region


def _check_format(export_settings: ExportSettings, strict: bool) -> None:
    unsupported = []
    if export_settings.format != ExportFormat.wav:
        unsupported.append(f"format {export_settings.format}")
    if export_settings.bit_depth != BITS_PER_SAMPLE:
        unsupported.append(f"{export_settings.bit_depth}-bit depth")
    if not unsupported:
        return
    if strict:
        raise ExportError(f"Unsupported export settings: {', '.join(unsupported)} (only 16-bit WAV)")
    logger.warning(f"Unsupported {', '.join(unsupported)}; writing 16-bit WAV instead")


def export_sample(
    buffer: PcmBuffer,
    start_time: float,
    duration: float,
    export_settings: ExportSettings,
    strict: bool | None = None,
) -> ExportedAudio:
    """Render one region of ``buffer`` to a self-contained WAV file."""
    if strict is None:
        strict = app_settings.strict_export_formats
    _check_format(export_settings, strict)

    region = render_region(buffer, start_time, duration)

    target_rate = export_settings.sample_rate or buffer.sample_rate
    if target_rate != buffer.sample_rate and region.shape[1] > 0:
        region = librosa.resample(region, orig_sr=buffer.sample_rate, target_sr=target_rate)

    if export_settings.normalize:
        region = normalize_peak(region)

    data = encode_wav(region, target_rate)
    return ExportedAudio(
        data=data,
        format=ExportFormat.wav,
        sample_rate=target_rate,
        channels=region.shape[0],
        frames=region.shape[1],
    )


def export_sample_entity(sample: Sample, export_settings: ExportSettings) -> ExportedAudio:
    buffer = sample.require_source(ExportError)
    return export_sample(buffer, sample.start, sample.duration, export_settings)


def export_filename(sample: Sample, export_settings: ExportSettings, index: int) -> str:
    stem = apply_naming_pattern(
        export_settings.naming_pattern,
        name=sample.name,
        sample_type=sample.type,
        index=index,
        duration=sample.duration,
    )
    stem = _UNSAFE_FILENAME_CHARS.sub("", stem)
    return f"{stem or sample.id}.{ExportFormat.wav}"


def export_batch(samples: Sequence[Sample], export_settings: ExportSettings) -> list[ExportResult]:
    """Export every sample in order; a failing sample is reported and skipped."""
    if not samples:
        raise SelectionError("Select at least one sample to export")

    results: list[ExportResult] = []
    for index, sample in enumerate(samples, 1):
        filename = export_filename(sample, export_settings, index)
        try:
            audio = export_sample_entity(sample, export_settings)
        except ExportError as e:
            logger.warning(f"Export of sample {sample.id} failed: {e}")
            results.append(ExportResult(sample.id, filename, error=str(e)))
            continue
        results.append(ExportResult(sample.id, filename, audio=audio))

    exported = sum(1 for r in results if r.ok)
    logger.info(f"Exported {exported}/{len(results)} samples")
    return results


def bundle_zip(results: Sequence[ExportResult]) -> bytes:
    """Pack successful exports into a ZIP; failures go into ``export_report.json``."""
    buf = io.BytesIO()
    used: set[str] = set()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for result in results:
            if not result.ok:
                continue
            name = result.filename
            n = 2
            while name in used:
                stem, _, ext = result.filename.rpartition(".")
                name = f"{stem}-{n}.{ext}"
                n += 1
            used.add(name)
            zf.writestr(name, result.audio.data)

        failures = [{"sample_id": r.sample_id, "error": r.error} for r in results if not r.ok]
        if failures:
            zf.writestr("export_report.json", json.dumps(failures, indent=2))
    return buf.getvalue()
