"""Transport — play/pause/seek over the live engine.

Position is never tracked sample by sample: while playing it is
``clock() - start_reference``, otherwise the stored paused position. Every
play rebuilds the graph so a fresh chain starts at the requested offset.

State changes are serialized by a lock shared with the end-of-stream
callback, which arrives on the audio thread. Output is always stopped
outside that lock, since stopping a stream may wait for the callback.
"""

import logging
import threading
import time
from enum import Enum

from master.engine.errors import NoBufferLoaded
from master.engine.presets import apply_preset

log = logging.getLogger(__name__)


class TransportState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class TransportController:

    def __init__(self, engine, output=None, clock=time.monotonic):
        self.engine = engine
        self.output = output
        self.clock = clock
        self.state = TransportState.STOPPED
        self.start_reference = 0.0
        self.paused_at = 0.0
        self._session = 0
        self._spectrum = None
        self._owns_output = output is None
        self._lock = threading.RLock()

    def _device(self):
        if self._owns_output and (self.output is None
                                  or self.output.sr != self.engine.sample_rate):
            from shared.streaming import StreamPlayer
            self.output = StreamPlayer(sr=self.engine.sample_rate, channels=2,
                                       blocksize=self.engine.block_size)
        return self.output

    @property
    def is_playing(self):
        return self.state == TransportState.PLAYING

    @property
    def current_time(self):
        with self._lock:
            if self.state == TransportState.PLAYING:
                return self.clock() - self.start_reference
            return self.paused_at

    def _halt(self):
        """End the current session; the caller stops output outside the lock."""
        with self._lock:
            if self.state != TransportState.PLAYING:
                return False
            self._session += 1
            return True

    def load(self, buffer):
        """New buffer: stop output and reset position."""
        if self._halt():
            self.output.stop()
        with self._lock:
            self.engine.load(buffer)
            self.state = TransportState.STOPPED
            self.start_reference = 0.0
            self.paused_at = 0.0
            self._spectrum = None

    def play(self, offset, settings):
        if self.engine.buffer is None:
            raise NoBufferLoaded("nothing to play: no audio buffer loaded")
        if self._halt():
            self.output.stop()
        with self._lock:
            device = self._device()
            self.engine.setup_graph(settings)
            self.engine.start(offset)
            self._session += 1
            session = self._session
            self.start_reference = self.clock() - offset
            self.paused_at = offset
            self.state = TransportState.PLAYING
            device.start(self.engine.pull, lambda: self._on_finished(session))
        log.debug("play from %.2fs", offset)

    def pause(self):
        with self._lock:
            if self.state != TransportState.PLAYING:
                return
            self._session += 1
            self.paused_at = self.clock() - self.start_reference
            self.state = TransportState.PAUSED
        self.output.stop()
        log.debug("pause at %.2fs", self.paused_at)

    def seek(self, position, settings):
        with self._lock:
            playing = self.state == TransportState.PLAYING
            if not playing:
                self.paused_at = position
        if playing:
            self.pause()
            self.play(position, settings)
        log.debug("seek to %.2fs", position)

    def update_settings(self, settings):
        self.engine.update_settings(settings)

    def apply_preset(self, name):
        """Replace the live settings with a copy of a library preset."""
        settings = apply_preset(name)
        self.engine.update_settings(settings)
        log.info("preset applied: %s", name)
        return settings

    def spectrum(self):
        """Meter bytes; refreshed only while playing, else the last reading."""
        with self._lock:
            if self.state == TransportState.PLAYING:
                reading = self.engine.spectrum()
                if reading is not None:
                    self._spectrum = reading
            return self._spectrum

    def _on_finished(self, session):
        # Called from the audio thread.
        with self._lock:
            if session != self._session or self.state != TransportState.PLAYING:
                return
            self.state = TransportState.STOPPED
            self.paused_at = 0.0
        log.info("playback reached end of buffer")
