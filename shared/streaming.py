"""Audio output streaming.

StreamPlayer wraps a callback-driven sd.OutputStream: the device thread
asks a render function for each block.
"""

import logging

import numpy as np
import sounddevice as sd

log = logging.getLogger(__name__)


class StreamPlayer:
    """Pull-mode playback via sd.OutputStream.

    render(frames) returns up to ``frames`` rows of (frames, channels)
    audio; a short block ends the stream. on_finished is called when the
    stream ends by itself, never after stop().
    """

    def __init__(self, sr=44100, channels=2, blocksize=1024):
        self.sr = sr
        self.channels = channels
        self.blocksize = blocksize
        self._stream = None
        self._stop_flag = False

    def start(self, render, on_finished=None):
        """Replace any running stream with one that pulls from render."""
        self.stop()
        self._stop_flag = False

        def _callback(outdata, frames, time_info, status):
            if status:
                log.debug("output stream status: %s", status)
            chunk = render(frames)
            valid = len(chunk)
            if valid:
                outdata[:valid] = np.clip(chunk, -1.0, 1.0)
            if valid < frames:
                outdata[valid:] = 0
                raise sd.CallbackStop()

        def _finished():
            if not self._stop_flag and on_finished is not None:
                on_finished()

        self._stream = sd.OutputStream(
            samplerate=self.sr,
            channels=self.channels,
            blocksize=self.blocksize,
            dtype='float32',
            callback=_callback,
            finished_callback=_finished,
        )
        self._stream.start()

    def stop(self):
        """Abort without draining; on_finished is suppressed."""
        self._stop_flag = True
        if self._stream is not None:
            try:
                self._stream.abort()
                self._stream.close()
            except sd.PortAudioError as exc:
                log.warning("closing output stream failed: %s", exc)
            self._stream = None
