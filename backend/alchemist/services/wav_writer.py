"""Canonical 44-byte-header, 16-bit PCM WAV encoding."""

import struct

import numpy as np

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def wav_header(data_length: int, channels: int, sample_rate: int) -> bytes:
    block_align = channels * BYTES_PER_SAMPLE
    return _HEADER.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,  # fmt chunk size
        1,  # PCM
        channels,
        sample_rate,
        sample_rate * block_align,  # byte rate
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_length,
    )


def pcm16_payload(data: np.ndarray) -> bytes:
    """Interleave (channels, frames) floats into little-endian int16 frames.

    Samples are clipped to [-1, 1]; negatives scale by 32768, the rest by
    32767, and the result is truncated toward zero.
    """
    clipped = np.clip(np.nan_to_num(np.asarray(data, dtype=np.float64)), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.trunc(scaled).astype("<i2").T.tobytes()


def encode_wav(data: np.ndarray, sample_rate: int) -> bytes:
    """Encode a (channels, frames) array as a complete WAV file."""
    data = np.atleast_2d(data)
    payload = pcm16_payload(data)
    return wav_header(len(payload), data.shape[0], sample_rate) + payload
