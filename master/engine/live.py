"""Live backend — the engine behind interactive playback.

MasteringEngine owns one realtime RenderContext, the loaded buffer, the
current graph and the impulse cache. The output device pulls frames from
it; the chain itself always runs in fixed blocks of ``block_size`` frames
(the partitioned reverb needs a constant block), and leftover frames wait
in a small FIFO for the next pull.

Rebuild, parameter updates and pulls are serialized by one lock, because
the device callback runs on its own thread.
"""

import logging
import threading

import numpy as np

from master.engine.chain import build_chain
from master.engine.errors import NoBufferLoaded
from master.engine.graph import BLOCK_SIZE, Graph, RenderContext
from master.engine.impulse import ImpulseSynthesizer
from master.engine.offline import render_offline
from master.engine.params import SR

log = logging.getLogger(__name__)


class MasteringEngine:

    def __init__(self, sample_rate=SR, block_size=BLOCK_SIZE, impulses=None):
        self.block_size = block_size
        self.context = RenderContext(sample_rate, realtime=True, block_size=block_size)
        self.impulses = impulses if impulses is not None else ImpulseSynthesizer()
        self.buffer = None
        self.graph = None
        self.settings = None
        self._lock = threading.RLock()
        self._source = None
        self._cursor = 0
        self._fifo = np.zeros((2, 0))
        self._exhausted = False

    @property
    def sample_rate(self):
        return self.context.sample_rate

    def load(self, buffer):
        """Take a new buffer. Drops the current graph; play rebuilds it."""
        with self._lock:
            if buffer.sample_rate != self.context.sample_rate:
                self.context = RenderContext(buffer.sample_rate, realtime=True,
                                             block_size=self.block_size)
            self.buffer = buffer
            self._source = np.ascontiguousarray(buffer.stereo())
            self._detach()
            self.start(0.0)
        log.info("loaded %.1fs of audio at %d Hz (%d ch)",
                 buffer.duration, buffer.sample_rate, buffer.channels)

    def setup_graph(self, settings):
        """Detach the old graph completely, then wire a new one."""
        if self.buffer is None:
            raise NoBufferLoaded("no audio buffer loaded")
        with self._lock:
            self._detach()
            self.settings = settings.copy()
            self.graph = Graph(build_chain(self.settings), self.context, self.impulses)

    def _detach(self):
        if self.graph is not None:
            self.graph.detach()
            self.graph = None

    def update_settings(self, settings):
        """Apply new settings: ramp in place, or rebuild when the wiring changes."""
        with self._lock:
            if self.graph is None:
                self.settings = settings.copy()
                return
            topology = build_chain(settings)
            if topology.signature() != self.graph.topology.signature():
                log.debug("EQ layout changed, rebuilding graph")
                self.setup_graph(settings)
                return
            self.settings = settings.copy()
            self.graph.update(topology)

    def start(self, offset_seconds):
        """Move the read cursor; output restarts from there."""
        with self._lock:
            frames = 0 if self._source is None else self._source.shape[1]
            self._cursor = min(max(0, int(round(offset_seconds * self.sample_rate))), frames)
            self._fifo = np.zeros((2, 0))
            self._exhausted = self._cursor >= frames

    def pull(self, frames):
        """Next (frames, 2) of processed audio; fewer frames once the source ends."""
        with self._lock:
            if self.graph is None or self._source is None:
                return np.zeros((0, 2))
            while self._fifo.shape[1] < frames and not self._exhausted:
                self._render_block()
            out = self._fifo[:, :frames]
            self._fifo = self._fifo[:, frames:]
            return np.ascontiguousarray(out.T)

    def _render_block(self):
        B = self.block_size
        block = self._source[:, self._cursor:self._cursor + B]
        valid = block.shape[1]
        if valid < B:
            block = np.concatenate([block, np.zeros((2, B - valid))], axis=1)
            self._exhausted = True
        self._cursor += valid
        if self._cursor >= self._source.shape[1]:
            self._exhausted = True
        out = self.graph.process(np.ascontiguousarray(block))
        self._fifo = np.concatenate([self._fifo, out[:, :valid]], axis=1)

    def spectrum(self):
        with self._lock:
            if self.graph is None:
                return None
            return self.graph.tap.byte_frequency_data()

    def render_offline(self, settings):
        """Full-buffer render with static parameters, independent of playback."""
        return render_offline(self.buffer, settings, self.impulses)
