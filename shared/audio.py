"""Audio I/O — WAV encode/decode and loading for the command-line tools.

encode_wav writes the canonical 44-byte RIFF header followed by
interleaved little-endian samples in one of three export formats. Integer
formats clip to [-1, 1] and scale asymmetrically (negative by 2^(b-1),
positive by 2^(b-1) - 1); decode_wav inverts the same scaling.

Audio arrays are frame-first: (frames,) mono or (frames, channels).
"""

import io
import logging
import os
import struct
from math import gcd

import numpy as np
from scipy.io import wavfile

from master.engine.errors import WavFormatError

log = logging.getLogger(__name__)

# name -> (bits, format tag, file-name suffix)
EXPORT_FORMATS = {
    "16-Bit PCM": (16, 1, "_master_16bit"),
    "24-Bit PCM": (24, 1, "_master_24bit"),
    "32-Bit Float": (32, 3, "_master_32bit_float"),
}
FORMAT_ALIASES = {"16": "16-Bit PCM", "24": "24-Bit PCM", "32f": "32-Bit Float"}


def resolve_format(name):
    name = FORMAT_ALIASES.get(name, name)
    if name not in EXPORT_FORMATS:
        raise WavFormatError(f"Unknown export format '{name}'. "
                             f"Options: {list(EXPORT_FORMATS.keys())}")
    return name


def export_filename(source_path, fmt):
    """song.mp3 + 24-Bit PCM -> song_master_24bit.wav"""
    stem = os.path.splitext(os.path.basename(source_path))[0]
    return f"{stem}{EXPORT_FORMATS[resolve_format(fmt)][2]}.wav"


def _as_frames(audio):
    audio = np.asarray(audio, dtype=np.float64)
    if audio.ndim == 1:
        audio = audio[:, np.newaxis]
    if audio.ndim != 2:
        raise WavFormatError(f"expected (frames, channels) audio, got {audio.shape}")
    return audio


def wav_header(channels, sr, bits, fmt_tag, data_size):
    block_align = channels * bits // 8
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF", 36 + data_size, b"WAVE",
        b"fmt ", 16, fmt_tag, channels, sr, sr * block_align, block_align, bits,
        b"data", data_size,
    )


def encode_wav(audio, sr, fmt="16-Bit PCM"):
    """Encode float audio to WAV bytes."""
    bits, fmt_tag, _ = EXPORT_FORMATS[resolve_format(fmt)]
    frames = _as_frames(audio)
    channels = frames.shape[1]

    if fmt_tag == 3:
        data = frames.astype("<f4").tobytes()
    else:
        s = np.clip(frames, -1.0, 1.0)
        neg = float(1 << (bits - 1))
        pos = neg - 1.0
        q = np.round(np.where(s < 0, s * neg, s * pos)).astype("<i4")
        if bits == 16:
            data = q.astype("<i2").tobytes()
        else:
            data = q.reshape(-1).view(np.uint8).reshape(-1, 4)[:, :3].tobytes()

    return wav_header(channels, int(sr), bits, fmt_tag, len(data)) + data


def decode_wav(data):
    """Decode WAV bytes. Returns (audio (frames, channels) float64, sr)."""
    try:
        sr, raw = wavfile.read(io.BytesIO(data))
    except ValueError as exc:
        raise WavFormatError(f"cannot decode WAV data: {exc}") from exc

    bits = struct.unpack_from("<H", data, 34)[0] if len(data) >= 36 else 0
    if raw.ndim == 1:
        raw = raw[:, np.newaxis]

    if raw.dtype == np.int16:
        q = raw.astype(np.float64)
        audio = np.where(q < 0, q / 32768.0, q / 32767.0)
    elif raw.dtype == np.int32 and bits == 24:
        # scipy left-justifies 24-bit samples in int32
        q = (raw >> 8).astype(np.float64)
        audio = np.where(q < 0, q / 8388608.0, q / 8388607.0)
    elif raw.dtype == np.int32:
        audio = raw.astype(np.float64) / 2147483648.0
    elif raw.dtype == np.uint8:
        audio = (raw.astype(np.float64) - 128.0) / 128.0
    else:
        audio = raw.astype(np.float64)
    return audio, int(sr)


def save_wav(path, audio, sr=44100, fmt="16-Bit PCM"):
    with open(path, "wb") as f:
        f.write(encode_wav(audio, sr, fmt))


def load_wav(path, sr=None):
    """Load a WAV file, optionally resampling to sr.

    Returns (audio_array, sample_rate).
    """
    with open(path, "rb") as f:
        audio, file_sr = decode_wav(f.read())
    return _resample(audio, file_sr, sr)


def load_audio(path, sr=None):
    """Load any supported file: WAV natively, other formats via soundfile or librosa."""
    ext = os.path.splitext(path)[1].lower()
    if ext == ".wav":
        return load_wav(path, sr)

    import soundfile as sf
    if ext.lstrip(".").upper() in sf.available_formats():
        audio, file_sr = sf.read(path, dtype="float64", always_2d=True)
        return _resample(audio, file_sr, sr)

    import librosa
    y, file_sr = librosa.load(path, sr=sr, mono=False)
    audio = y.T if y.ndim == 2 else y[:, np.newaxis]
    log.debug("decoded %s via librosa at %d Hz", path, file_sr)
    return np.asarray(audio, dtype=np.float64), int(file_sr)


def _resample(audio, file_sr, sr):
    if sr is None or file_sr == sr:
        return audio, file_sr
    from scipy.signal import resample_poly
    g = gcd(sr, file_sr)
    return resample_poly(audio, sr // g, file_sr // g, axis=0), sr


def safety_check(output):
    """(ok, message) for a rendered master before it is written."""
    if not np.all(np.isfinite(output)):
        return False, "render produced NaN or inf samples"
    peak = np.max(np.abs(output)) if output.size else 0.0
    if peak > 1e6:
        return False, f"render peak {peak:.0e} is out of range"
    return True, ""
