import logging
from pathlib import Path

import librosa
import numpy as np
import soundfile as sf

from alchemist.errors import DecodeError
from alchemist.models.buffer import PcmBuffer

logger = logging.getLogger(__name__)


def _read_with_soundfile(path: Path) -> tuple[np.ndarray, int]:
    # The file handle is held only for the duration of the read
    with sf.SoundFile(str(path)) as f:
        data = f.read(dtype="float32", always_2d=True)
        return data.T, f.samplerate


def _read_with_librosa(path: Path) -> tuple[np.ndarray, int]:
    y, sr = librosa.load(str(path), sr=None, mono=False)
    return np.atleast_2d(y), int(sr)


def load_audio(path: Path) -> PcmBuffer:
    """Decode an audio file at its native rate, keeping every channel.

    Formats libsndfile can't open (e.g. MP3 on older builds) go through
    librosa's fallback decoders. Any failure surfaces as ``DecodeError``.
    """
    if not path.exists():
        raise DecodeError(f"Audio file not found: {path.name}")

    try:
        data, sr = _read_with_soundfile(path)
    except sf.LibsndfileError:
        logger.info(f"soundfile cannot read {path.name}, falling back to librosa")
        try:
            data, sr = _read_with_librosa(path)
        except Exception as e:
            raise DecodeError(f"Unsupported or corrupt audio file: {path.name}") from e

    if data.size == 0:
        raise DecodeError(f"Audio file contains no samples: {path.name}")

    buffer = PcmBuffer(data=data, sample_rate=sr)
    logger.info(
        f"Decoded {path.name}: {buffer.num_channels} ch, {buffer.sample_rate} Hz, "
        f"{buffer.duration:.2f}s"
    )
    return buffer
