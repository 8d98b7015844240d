from dataclasses import dataclass

import numpy as np


@dataclass(eq=False)
class PcmBuffer:
    """Decoded audio: float samples in [-1, 1], shape (channels, frames).

    The buffer belongs to whoever decoded it. Analysis only reads channel 0;
    export copies the region it renders before touching any sample.
    """

    data: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2:
            raise ValueError(f"PCM data must be 1-D or 2-D, got shape {data.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        self.data = data

    @property
    def num_channels(self) -> int:
        return int(self.data.shape[0])

    @property
    def length(self) -> int:
        """Frames per channel."""
        return int(self.data.shape[1])

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate

    @property
    def mono(self) -> np.ndarray:
        """The analysis channel (first channel, not a downmix)."""
        return self.data[0]
