"""AudioBuffer — decoded PCM handed to the engine.

Samples are stored channel-first, (channels, frames), float64. Helpers
convert from and to the frame-first arrays used by scipy/sounddevice.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from master.engine.errors import InvalidBufferError


@dataclass(eq=False)
class AudioBuffer:
    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        samples = np.asarray(self.samples, dtype=np.float64)
        if samples.ndim == 1:
            samples = samples[np.newaxis, :]
        if samples.ndim != 2 or samples.shape[0] == 0:
            raise InvalidBufferError(f"expected (channels, frames) samples, got {samples.shape}")
        if self.sample_rate is None or int(self.sample_rate) <= 0:
            raise InvalidBufferError(f"invalid sample rate {self.sample_rate}")
        self.samples = np.ascontiguousarray(samples)
        self.sample_rate = int(self.sample_rate)

    @classmethod
    def from_frames(cls, audio, sample_rate) -> AudioBuffer:
        """From (frames,) mono or (frames, channels)."""
        audio = np.asarray(audio, dtype=np.float64)
        if audio.ndim == 2:
            audio = audio.T
        return cls(audio, sample_rate)

    def as_frames(self):
        """(frames, channels) copy for writers and output devices."""
        return np.ascontiguousarray(self.samples.T)

    @property
    def channels(self):
        return self.samples.shape[0]

    @property
    def frames(self):
        return self.samples.shape[1]

    @property
    def duration(self):
        return self.frames / self.sample_rate

    def stereo(self):
        """Two-channel view: mono duplicated, extra channels dropped."""
        if self.channels == 1:
            return np.vstack([self.samples, self.samples])
        return self.samples[:2]
