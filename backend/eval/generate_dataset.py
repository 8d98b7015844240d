"""Synthetic sample-slicing dataset generator.

Renders random sequences of synthetic hits (kick-like thumps, hi-hat-like
noise ticks, tonal notes) into a mono mix, with ground-truth onset times
and expected sample types for evaluating the analysis pipeline.
"""

import json
from pathlib import Path

import numpy as np
import soundfile as sf

from alchemist.models.sample import SampleType

SAMPLE_RATE = 44100

# Synth voice → sample type it should be sliced as
VOICE_TO_SAMPLE_TYPE: dict[str, SampleType] = {
    "kick": SampleType.kick,
    "hihat": SampleType.hihat,
    "tone": SampleType.melody,
}


def _kick(sr: int, rng: np.random.Generator) -> np.ndarray:
    """Pitch-dropping low sine with a fast exponential decay."""
    n = int(0.3 * sr)
    t = np.arange(n) / sr
    freq = rng.uniform(50, 70) + 80 * np.exp(-t * 40)
    phase = 2 * np.pi * np.cumsum(freq) / sr
    return (np.sin(phase) * np.exp(-t * 12)).astype(np.float32)


def _hihat(sr: int, rng: np.random.Generator) -> np.ndarray:
    """Short white-noise tick."""
    n = int(0.06 * sr)
    t = np.arange(n) / sr
    return (rng.uniform(-1, 1, n) * np.exp(-t * 80)).astype(np.float32)


def _tone(sr: int, rng: np.random.Generator) -> np.ndarray:
    """Harmonic note with a slow linear attack."""
    n = int(0.4 * sr)
    t = np.arange(n) / sr
    f0 = rng.choice([220.0, 330.0, 440.0])
    wave = sum(np.sin(2 * np.pi * f0 * h * t) / h for h in (1, 2, 3))
    attack = np.minimum(1.0, t / 0.15)
    return (0.6 * wave * attack * np.exp(-t * 2)).astype(np.float32)


VOICES = {"kick": _kick, "hihat": _hihat, "tone": _tone}


def random_sequence(
    rng: np.random.Generator, duration_s: float, min_gap_s: float = 0.25, max_gap_s: float = 0.6
) -> list[tuple[float, str]]:
    """Random (time, voice) hits, spaced ``min_gap_s``..``max_gap_s`` apart."""
    events: list[tuple[float, str]] = []
    t = rng.uniform(0.05, 0.2)
    while t < duration_s - 0.5:
        events.append((round(float(t), 4), str(rng.choice(list(VOICES)))))
        t += rng.uniform(min_gap_s, max_gap_s)
    return events


def render_sequence(
    events: list[tuple[float, str]],
    duration_s: float,
    rng: np.random.Generator,
    sr: int = SAMPLE_RATE,
    snr_db: float | None = None,
) -> np.ndarray:
    total_samples = int(duration_s * sr)
    mix = np.zeros(total_samples, dtype=np.float32)
    for time_s, voice in events:
        hit = VOICES[voice](sr, rng) * rng.uniform(0.5, 1.0)
        onset = int(round(time_s * sr))
        end = min(total_samples, onset + len(hit))
        if end > onset:
            mix[onset:end] += hit[: end - onset]

    if snr_db is not None:
        signal_rms = float(np.sqrt(np.mean(mix**2)))
        if signal_rms > 0:
            noise_rms = signal_rms / (10.0 ** (snr_db / 20.0))
            mix = mix + (noise_rms * rng.standard_normal(total_samples)).astype(np.float32)

    # Peak-normalize to 0.95
    max_val = float(np.max(np.abs(mix)))
    if max_val > 0:
        mix = mix * (0.95 / max_val)
    return mix


def render_example(
    output_dir: Path,
    duration_s: float = 8.0,
    seed: int = 0,
    snr_db: float | None = None,
) -> dict:
    """Render one example directory.

    Output layout:
        <output_dir>/
            mix.wav              # mono mix
            ground_truth.json    # [{time, voice, sample_type}]
            meta.json            # {sample_rate, duration_s, seed, snr_db, event_count}

    Returns:
        meta dict written to meta.json
    """
    rng = np.random.default_rng(seed)
    events = random_sequence(rng, duration_s)
    mix = render_sequence(events, duration_s, rng, snr_db=snr_db)

    output_dir.mkdir(parents=True, exist_ok=True)
    sf.write(str(output_dir / "mix.wav"), mix, SAMPLE_RATE)

    ground_truth = [
        {"time": t, "voice": voice, "sample_type": VOICE_TO_SAMPLE_TYPE[voice].value}
        for t, voice in events
    ]
    with open(output_dir / "ground_truth.json", "w") as f:
        json.dump(ground_truth, f, indent=2)

    meta = {
        "sample_rate": SAMPLE_RATE,
        "duration_s": duration_s,
        "seed": seed,
        "snr_db": snr_db,
        "event_count": len(ground_truth),
    }
    with open(output_dir / "meta.json", "w") as f:
        json.dump(meta, f, indent=2)

    return meta
