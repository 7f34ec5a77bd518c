"""Preset library — named, read-only ParameterSet snapshots.

Each preset is the neutral defaults overridden by a handful of fields,
with EQ gains given over the default band frequencies. Applying a preset
hands out a deep copy so the library entries never change.

Preset files are JSON: the ParameterSet dict plus an optional
"_meta": {"name": ..., "description": ...} entry. Values read from a file
are clamped to the schema ranges.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from master.engine.params import (
    DEFAULT_EQ_FREQUENCIES, SCHEMA, CompressorSettings, EQBand, ParameterSet,
    ReverbSettings,
)


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    snapshot: ParameterSet

    def apply(self) -> ParameterSet:
        return self.snapshot.copy()


def _eq(gains):
    return [EQBand(float(f), float(g)) for f, g in zip(DEFAULT_EQ_FREQUENCIES, gains)]


def _preset(name, description, **overrides):
    return Preset(name, description, ParameterSet(**overrides))


PRESETS = {p.name: p for p in [
    _preset(
        "Pop", "Radio-ready polish. Balanced highs and tight lows.",
        master_gain=0.10,
        eq=_eq([0, 1, 0, -1, -2, -1, 0, 1, 2, 2, 2, 1, 0, 0]),
        compressor=CompressorSettings(-15, 2.5, 0.01, 0.1),
        saturation=0.02, air=2.0, body=1.0, stereo_width=0.10,
        ceiling=-0.2, dynamic_bass=1.0, soft_clip=0.1,
    ),
    _preset(
        "Rap", "Heavy kick, clear vocals, hard limiting.",
        master_gain=0.05,
        eq=_eq([2, 3, 1, 0, -1, 0, 1, 2, 3, 3, 1, 0, 0, 0]),
        compressor=CompressorSettings(-16, 4.0, 0.005, 0.05),
        saturation=0.04, air=1.5, body=0.5, dynamic_bass=3.0,
        stereo_bass=0.5, ceiling=-0.1, soft_clip=0.3,
    ),
    _preset(
        "Rock", "Aggressive guitars, punchy drums, solid power.",
        master_gain=0.08,
        eq=_eq([1, 2, 1, 0, -1, 0, 2, 3, 3, 2, 1, 0, 0, 0]),
        compressor=CompressorSettings(-14, 3.5, 0.01, 0.1),
        saturation=0.05, body=1.5, air=1.5, dynamic_bass=1.5,
        stereo_width=0.15, ceiling=-0.1, soft_clip=0.25,
    ),
    _preset(
        "Anatolian Rock", "Psychedelic 70s vibe. Driving bass rhythm, vintage warmth.",
        master_gain=0.12,
        eq=_eq([2, 3, 2, 1, 0, 1, 2, 2, 1, 1, 0, 0, 0, 0]),
        compressor=CompressorSettings(-13, 2.5, 0.02, 0.2),
        saturation=0.08, body=3.0, stereo_bass=2.0, dynamic_bass=3.5,
        reverb=ReverbSettings(0.2, 2.0), air=1.0, stereo_width=0.2,
        soft_clip=0.2,
    ),
    _preset(
        "Acoustic", "Dynamic, open, minimal coloring.",
        master_gain=0.0,
        eq=_eq([0, 0, -1, -1, 0, 0, 1, 1, 2, 1, 0, 0, 0, 0]),
        compressor=CompressorSettings(-10, 1.5, 0.02, 0.2),
        reverb=ReverbSettings(0.1, 1.5), air=1.0, stereo_width=0.05,
        saturation=0.01, body=1.0,
    ),
    _preset(
        "Vocal", "Mid-forward, de-essed highs, vocal presence.",
        master_gain=0.1,
        eq=_eq([-2, -1, -1, 0, 2, 3, 3, 0, 1, 2, 1, 0, 0, 0]),
        compressor=CompressorSettings(-18, 2.5, 0.01, 0.15),
        body=2.5, air=2.0, reverb=ReverbSettings(0.15, 2.0),
        stereo_width=0.0, soft_clip=0.1,
    ),
    _preset(
        "Arabesk", "Emotional, wide stereo field, warm mids.",
        master_gain=0.12,
        eq=_eq([1, 2, 2, 1, 2, 2, 1, 0, 0, 1, 0, 0, 0, 0]),
        compressor=CompressorSettings(-14, 3.0, 0.02, 0.3),
        reverb=ReverbSettings(0.30, 3.0), body=4.0, stereo_width=0.30,
        stereo_bass=1.5, saturation=0.05,
    ),
    _preset(
        "Slow", "Glue compression, dark vintage tone.",
        master_gain=0.1,
        eq=_eq([1, 1, 1, 0, 0, -0.5, -1, -1, -0.5, 0, 0, 0, 0, 0]),
        compressor=CompressorSettings(-12, 2.0, 0.05, 0.5),
        saturation=0.06, body=3.0, reverb=ReverbSettings(0.20, 2.5),
        soft_clip=0.2, air=0.5,
    ),
    _preset("Manual", "Reset all settings. You are in control."),
]}


def get_preset(name: str) -> Preset:
    """Look up a library preset. Unknown names raise KeyError."""
    if name not in PRESETS:
        raise KeyError(f"Unknown preset '{name}'. Options: {list(PRESETS.keys())}")
    return PRESETS[name]


def apply_preset(name: str) -> ParameterSet:
    return get_preset(name).apply()


def load_preset_file(path) -> ParameterSet:
    with open(path) as f:
        data = json.load(f)
    data.pop("_meta", None)
    settings = ParameterSet.from_dict(data)
    settings = settings.with_overrides(SCHEMA.validate_and_clamp(settings.to_flat()))
    gains = SCHEMA.get("eq.gains")
    for band in settings.eq:
        band.gain = gains.clamp(band.gain)
    return settings


def save_preset_file(path, settings: ParameterSet, name="", description=""):
    data = settings.to_dict()
    data["_meta"] = {"name": name, "description": description}
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
