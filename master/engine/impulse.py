"""Impulse response synthesis for the convolution reverb.

The response is decaying stereo noise: per sample n of a buffer of
length L, envelope (1 - n/L) ** decay, times independent uniform noise in
[-1, 1] for each channel. Noise comes from a seeded generator so two
renders with the same settings are bit-identical.

ImpulseSynthesizer keeps one cached response per render context and hands
it back while the requested decay is within 0.01 of the cached one.
"""

import logging
import weakref
from dataclasses import dataclass

import numpy as np

log = logging.getLogger(__name__)

IMPULSE_SECONDS = 3.0
DECAY_TOLERANCE = 0.01


@dataclass(frozen=True, eq=False)
class ImpulseResponse:
    samples: np.ndarray   # (2, length)
    sample_rate: int
    decay: float
    duration: float
    reverse: bool = False

    @property
    def length(self):
        return self.samples.shape[1]


def synthesize_impulse(sample_rate, decay, duration=IMPULSE_SECONDS,
                       reverse=False, seed=0):
    """Stereo decaying-noise buffer, shape (2, int(sample_rate * duration))."""
    length = int(sample_rate * duration)
    rng = np.random.RandomState(seed)
    n = np.arange(length, dtype=np.float64)
    if reverse:
        n = length - n
    env = (1.0 - n / length) ** decay
    noise = rng.uniform(-1.0, 1.0, size=(2, length))
    return noise * env


def normalization_scale(samples, sample_rate):
    """Gain a browser convolver applies to a response before using it."""
    rms = np.sqrt(np.mean(samples ** 2)) if samples.size else 0.0
    return 0.00125 / max(rms, 0.000125) * 44100.0 / sample_rate


class ImpulseSynthesizer:
    """Per-context impulse cache. Contexts are held weakly."""

    def __init__(self, seed=0, duration=IMPULSE_SECONDS):
        self.seed = seed
        self.duration = duration
        self._cache = weakref.WeakKeyDictionary()

    def get(self, context, decay, reverse=False):
        cached = self._cache.get(context)
        if (cached is not None
                and cached.sample_rate == context.sample_rate
                and cached.reverse == reverse
                and abs(cached.decay - decay) < DECAY_TOLERANCE):
            log.debug("impulse cache hit: decay=%.3f context=%s", decay, id(context))
            return cached

        log.debug("impulse cache miss: decay=%.3f context=%s", decay, id(context))
        samples = synthesize_impulse(context.sample_rate, decay, self.duration,
                                     reverse, self.seed)
        samples.setflags(write=False)
        ir = ImpulseResponse(samples, context.sample_rate, float(decay),
                             self.duration, reverse)
        self._cache[context] = ir
        return ir

    def clear(self):
        self._cache.clear()
