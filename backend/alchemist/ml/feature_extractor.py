"""Signal primitives shared by the detectors and the instrument classifier.

All functions take a mono float array and return plain floats or arrays.
Degenerate input (empty window, zero energy) resolves to 0 or an empty
array; nothing here returns NaN.

"Spectrum" defaults to the sample-magnitude approximation: the absolute
value of each sample in a short window is used as a stand-in bin magnitude.
The classifier thresholds are tuned to that approximation. ``SpectrumMode.fft``
swaps in a real STFT magnitude.
"""

import librosa
import numpy as np

from alchemist.models.analysis import SpectrumMode

ENERGY_WINDOW_S = 0.01  # transient detector window
FLUX_WINDOW_S = 0.02
FLUX_HOP_S = 0.01
ATTACK_THRESHOLD_FRAC = 0.1  # fraction of peak that marks the start of the attack
HARMONIC_COUNT = 10
HARMONIC_TOLERANCE = 0.03  # ± fraction of the harmonic bin index
MIN_FFT_SIZE = 256
MAX_FFT_SIZE = 2048


def window_size(sr: int, seconds: float) -> int:
    """Whole samples covered by ``seconds`` (floored)."""
    return int(seconds * sr)


def frame_starts(length: int, window: int, hop: int) -> range:
    """Start indices of every analysis window that fits strictly inside ``length``."""
    if window <= 0 or hop <= 0:
        return range(0)
    return range(0, length - window, hop)


def slice_segment(y: np.ndarray, sr: int, start_time: float, duration: float) -> np.ndarray:
    """Samples of ``[start_time, start_time + duration)``, clipped to the buffer."""
    start = max(0, int(start_time * sr))
    end = min(len(y), start + int(duration * sr))
    return y[start:end]


def windowed_rms(y: np.ndarray, window: int) -> np.ndarray:
    """RMS of consecutive non-overlapping windows."""
    n_windows = len(frame_starts(len(y), window, window))
    if n_windows == 0:
        return np.zeros(0, dtype=np.float64)
    frames = np.asarray(y[: n_windows * window], dtype=np.float64).reshape(n_windows, window)
    return np.sqrt(np.mean(frames**2, axis=1))


def envelope_follower(
    y: np.ndarray, sr: int, attack_ms: float = 10.0, release_ms: float = 100.0
) -> np.ndarray:
    """Asymmetric one-pole amplitude follower, one output value per input sample."""
    attack = max(1, window_size(sr, attack_ms / 1000.0))
    release = max(1, window_size(sr, release_ms / 1000.0))

    out = np.empty(len(y), dtype=np.float32)
    env = 0.0
    for i, value in enumerate(np.abs(y).tolist()):
        if value > env:
            env += (value - env) / attack
        else:
            env += (value - env) / release
        out[i] = env
    return out


def decimate_envelope(envelope: np.ndarray, points: int) -> list[float]:
    """Peak-hold reduction of an envelope to at most ``points`` values for display."""
    if len(envelope) == 0 or points <= 0:
        return []
    if len(envelope) <= points:
        return [float(v) for v in envelope]
    return [float(chunk.max()) for chunk in np.array_split(envelope, points)]


def magnitude_spectrum(
    window: np.ndarray, mode: SpectrumMode = SpectrumMode.magnitude
) -> np.ndarray:
    """Per-bin magnitudes of a short window."""
    window = np.asarray(window, dtype=np.float32)
    if mode == SpectrumMode.fft:
        if len(window) == 0:
            return np.zeros(0, dtype=np.float32)
        if len(window) < MIN_FFT_SIZE:
            window = np.pad(window, (0, MIN_FFT_SIZE - len(window)))
        n_fft = min(MAX_FFT_SIZE, len(window))
        S = np.abs(librosa.stft(window, n_fft=n_fft, hop_length=n_fft // 4))
        return S.mean(axis=1)
    return np.abs(window)


def spectral_centroid(magnitudes: np.ndarray, sr: int) -> float:
    """Magnitude-weighted mean bin frequency; bin i sits at i * sr / (2 * n_bins)."""
    mags = np.asarray(magnitudes, dtype=np.float64)
    total = float(mags.sum())
    if len(mags) == 0 or total <= 0:
        return 0.0
    freqs = np.arange(len(mags)) * sr / (2 * len(mags))
    return float(np.dot(freqs, mags) / total)


def spectral_flux(
    y: np.ndarray, sr: int, mode: SpectrumMode = SpectrumMode.magnitude
) -> float:
    """Mean per-window spectral change over 20 ms windows hopped every 10 ms.

    Each window contributes sum(|spectrum - previous|) / window_size; the
    first window is compared against silence.
    """
    window = window_size(sr, FLUX_WINDOW_S)
    hop = window_size(sr, FLUX_HOP_S)

    total = 0.0
    count = 0
    prev: np.ndarray | None = None
    for start in frame_starts(len(y), window, hop):
        spectrum = magnitude_spectrum(y[start : start + window], mode)
        if prev is None:
            prev = np.zeros_like(spectrum)
        total += float(np.sum(np.abs(spectrum - prev))) / window
        count += 1
        prev = spectrum

    return total / count if count > 0 else 0.0


def attack_time(y: np.ndarray, sr: int) -> float:
    """Seconds from the first sample above 10% of peak to the peak itself."""
    if len(y) == 0 or sr <= 0:
        return 0.0
    mags = np.abs(np.asarray(y, dtype=np.float64))
    peak_index = int(np.argmax(mags))
    peak = mags[peak_index]
    above = np.flatnonzero(mags[:peak_index] > ATTACK_THRESHOLD_FRAC * peak)
    attack_start = int(above[0]) if len(above) > 0 else 0
    return (peak_index - attack_start) / sr


def harmonicity(magnitudes: np.ndarray) -> float:
    """Share of total magnitude found at the first ten multiples of the fundamental.

    The fundamental is the strongest bin (excluding DC) in the lowest eighth of
    the spectrum. Each harmonic contributes the peak magnitude within ±3% of
    its bin index.
    """
    mags = np.asarray(magnitudes, dtype=np.float64)
    n = len(mags)
    total = float(mags.sum())
    if n == 0 or total <= 0:
        return 0.0

    fundamental = 0
    max_energy = 0.0
    for i in range(1, int(np.ceil(n / 8))):
        if mags[i] > max_energy:
            max_energy = mags[i]
            fundamental = i
    if fundamental == 0:
        return 0.0

    harmonic_energy = 0.0
    for h in range(1, HARMONIC_COUNT + 1):
        harmonic_bin = h * fundamental
        if harmonic_bin >= n:
            break
        width = int(np.ceil(HARMONIC_TOLERANCE * harmonic_bin))
        lo = max(0, harmonic_bin - width)
        hi = min(n - 1, harmonic_bin + width)
        harmonic_energy += float(mags[lo : hi + 1].max())

    return harmonic_energy / total
