"""Mastering assistant — analysis metrics in, ParameterSet and decision log out.

A fixed rule set, no randomness: the same AnalysisResult always produces
the same settings and the same log lines in the same order. Loudness is
the rms heuristic ``20*log10(rms) - 0.6``, labelled LUFS but not a gated
or weighted measurement.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from master.engine.errors import InvalidAnalysisError
from master.engine.params import ParameterSet, default_settings

log = logging.getLogger(__name__)

TARGET_CURVE = [0.95, 0.90, 0.85, 0.80,
                0.75, 0.70, 0.65, 0.60,
                0.55, 0.50, 0.45, 0.40,
                0.35, 0.30]
EQ_SENSITIVITY = -12.0
LUFS_OFFSET = -0.6
TARGET_LUFS = -10.0
QUIET_TARGET_LUFS = -13.0
MAX_LINEAR_GAIN_DB = 4.0
MIN_RMS = 1e-9
REQUIRED_METRICS = ("rms", "crest_factor", "spectral_flux")


@dataclass
class AnalysisResult:
    rms: float
    crest_factor: float
    spectral_flux: float
    spectral_balance: list = field(default_factory=list)
    low_energy: float = 0.0
    mid_energy: float = 0.0
    musical_key: str = ""
    musical_scale: str = ""
    bpm: float = 0.0

    _ALIASES = {
        "crestFactor": "crest_factor",
        "spectralFlux": "spectral_flux",
        "spectralBalance": "spectral_balance",
        "lowEnergy": "low_energy",
        "midEnergy": "mid_energy",
        "musicalKey": "musical_key",
        "musicalScale": "musical_scale",
    }

    @classmethod
    def from_dict(cls, data: dict) -> AnalysisResult:
        """Accepts snake_case or camelCase keys (analyzer JSON uses the latter)."""
        kwargs = {}
        for key, value in data.items():
            name = cls._ALIASES.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
        for name in REQUIRED_METRICS:
            if name not in kwargs:
                raise InvalidAnalysisError(f"analysis is missing '{name}'")
        return cls(**kwargs)


@dataclass
class AssistantDecision:
    settings: ParameterSet
    logs: list


def estimate_lufs(rms):
    return 20.0 * math.log10(max(rms, MIN_RMS)) + LUFS_OFFSET


def _clamp(v, lo, hi):
    return min(hi, max(lo, v))


def _eq_limit(frequency):
    return 4.0 if frequency > 8000 else 3.0


def generate_settings(analysis: AnalysisResult) -> AssistantDecision:
    settings = default_settings()
    logs = []

    estimated = estimate_lufs(analysis.rms)
    crest = analysis.crest_factor

    logs.append("> ANALYSIS: scan complete.")
    logs.append(f"> MUSICAL CONTEXT: {analysis.musical_key} {analysis.musical_scale} "
                f"@ {analysis.bpm:g} BPM")
    logs.append(f"> INPUT: LUFS={estimated:.1f} | Dyn Range={crest:.1f}")

    # Spectral match against the descending target curve
    balance = analysis.spectral_balance
    for i, band in enumerate(settings.eq):
        if i >= len(balance) or balance[i] is None:
            continue
        target = TARGET_CURVE[i] if i < len(TARGET_CURVE) else 0.5
        limit = _eq_limit(band.frequency)
        gain = _clamp((balance[i] - target) * EQ_SENSITIVITY, -limit, limit)
        band.gain = round(gain, 1)
    logs.append("> EQ: Balanced frequency response.")

    # Imaging and low end
    settings.stereo_width = 0.15
    if analysis.low_energy > 0.6:
        settings.stereo_bass = 2.0
    if analysis.low_energy < 0.4:
        settings.dynamic_bass = 3.0
        logs.append("> LOW END: Weak bass, adding dynamic punch.")
    if analysis.mid_energy > analysis.low_energy * 1.5:
        settings.stereo_width = 0.05

    # Texture
    if analysis.spectral_flux < 12:
        settings.saturation = 0.04
        settings.body = 1.5
        logs.append("> COLOR: Little spectral movement, adding harmonic saturation.")
    else:
        settings.saturation = 0.01
        settings.body = 0.0

    # Loudness
    target_lufs = TARGET_LUFS
    if estimated > -12:
        target_lufs = estimated
    if estimated < -24:
        target_lufs = QUIET_TARGET_LUFS
    gain_needed = target_lufs - estimated

    if gain_needed > 0.5:
        linear_db = min(gain_needed, MAX_LINEAR_GAIN_DB)
        saturator_db = max(0.0, gain_needed - linear_db)
        settings.master_gain = _clamp(10.0 ** (linear_db / 20.0) - 1.0, 0.0, 0.8)
        settings.ceiling = -0.3

        soft_clip = _clamp(saturator_db * 0.08, 0.0, 0.4)
        if crest > 4.0:
            soft_clip += 0.1
            logs.append("> DYNAMICS: High crest factor, soft clip tames the peaks.")
        settings.soft_clip = round(soft_clip, 2)
        logs.append(f"> LOUDNESS: Gain +{linear_db:.1f}dB. Density +{saturator_db:.1f}dB via soft clip.")

        if gain_needed > 3:
            settings.compressor.threshold = -16.0
            settings.compressor.ratio = 2.0
            settings.compressor.attack = 0.01
            settings.compressor.release = 0.15
    else:
        settings.master_gain = 0.0
        settings.soft_clip = 0.05
        logs.append(f"> LOUDNESS: Track is optimal (-{abs(estimated):.1f} LUFS).")

    for line in logs:
        log.info(line)
    return AssistantDecision(settings, logs)
