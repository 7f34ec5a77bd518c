"""Offline render backend — one deterministic pass over the whole buffer.

Builds the same topology as live playback against a non-realtime context.
Parameters are static from the first sample (no smoothing ramps), so the
same buffer and settings always give bit-identical output.
"""

import logging
import time

import numpy as np

from master.engine.buffer import AudioBuffer
from master.engine.chain import build_chain
from master.engine.errors import NoBufferLoaded
from master.engine.graph import Graph, RenderContext
from master.engine.impulse import ImpulseSynthesizer

log = logging.getLogger(__name__)


def render_offline(buffer, settings, impulses=None) -> AudioBuffer:
    """Render buffer through the chain. Output is stereo, same rate and length."""
    if buffer is None:
        raise NoBufferLoaded("no audio buffer loaded for offline render")

    context = RenderContext(buffer.sample_rate, realtime=False)
    source = np.ascontiguousarray(buffer.stereo())
    if source.shape[1] == 0:
        return AudioBuffer(np.zeros((2, 0)), buffer.sample_rate)

    t0 = time.perf_counter()
    graph = Graph(build_chain(settings), context,
                  impulses if impulses is not None else ImpulseSynthesizer())
    try:
        out = graph.process(source)
    finally:
        graph.detach()
    elapsed = time.perf_counter() - t0

    log.info("render %.1fs audio in %.3fs (offline, %.0fx RT)",
             buffer.duration, elapsed, buffer.duration / max(elapsed, 1e-9))
    return AudioBuffer(out, buffer.sample_rate)
