"""Parameter model for the mastering chain.

ParameterSet is the whole mastering configuration: plain data, no
behaviour beyond copying and conversion to/from the dicts stored in
preset files. The declarative SCHEMA below documents every field with its
section, default and range; the command line validates overrides
against it and lists it with `params`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

from shared.params import ParamType as T, ParamDef, ParamSchema

SR = 44100

DEFAULT_EQ_FREQUENCIES = [30, 60, 120, 240, 500, 1000, 2000, 4000,
                          8000, 12000, 16000, 20000, 26000, 32000]

# ── Schema ────────────────────────────────────────────────────────────

_PARAMS = [
    ParamDef("master_gain", T.FLOAT, section="output", default=0.0,
             label="Master gain (offset from unity)", range=(0.0, 0.8)),

    ParamDef("eq.gains", T.FLOAT_ARRAY, section="eq",
             default=[0.0] * len(DEFAULT_EQ_FREQUENCIES),
             range=(-12.0, 12.0), array_size=len(DEFAULT_EQ_FREQUENCIES)),

    ParamDef("compressor.threshold", T.FLOAT, section="compressor",
             default=0.0, range=(-60.0, 0.0)),
    ParamDef("compressor.ratio", T.FLOAT, section="compressor",
             default=0.0, range=(0.0, 20.0)),
    ParamDef("compressor.attack", T.FLOAT, section="compressor",
             default=0.0, range=(0.0, 1.0)),
    ParamDef("compressor.release", T.FLOAT, section="compressor",
             default=0.0, range=(0.0, 1.0)),

    ParamDef("reverb.mix", T.FLOAT, section="reverb", default=0.0,
             range=(0.0, 1.0)),
    ParamDef("reverb.decay", T.FLOAT, section="reverb", default=2.0,
             range=(0.1, 10.0)),

    ParamDef("saturation", T.FLOAT, section="color", default=0.0,
             range=(0.0, 1.0)),
    ParamDef("body", T.FLOAT, section="color", default=0.0,
             label="Low-mid warmth (dB)", range=(0.0, 6.0)),
    ParamDef("air", T.FLOAT, section="color", default=0.0,
             label="High-shelf brightness (dB)", range=(0.0, 12.0)),
    ParamDef("dynamic_bass", T.FLOAT, section="color", default=0.0,
             label="Bass punch (dB)", range=(0.0, 12.0)),

    ParamDef("stereo_width", T.FLOAT, section="stereo", default=0.0,
             label="Side gain offset", range=(0.0, 2.0)),
    ParamDef("stereo_bass", T.FLOAT, section="stereo", default=0.0,
             label="Side low-shelf (dB)", range=(0.0, 12.0)),

    ParamDef("ceiling", T.FLOAT, section="output", default=0.0,
             label="Limiter threshold (dB)", range=(-10.0, 0.0)),
    ParamDef("soft_clip", T.FLOAT, section="output", default=0.0,
             range=(0.0, 1.0)),
]

SCHEMA = ParamSchema(_PARAMS)


# ── Data model ───────────────────────────────────────────────────────

@dataclass
class EQBand:
    frequency: float
    gain: float = 0.0


@dataclass
class CompressorSettings:
    threshold: float = 0.0
    ratio: float = 0.0
    attack: float = 0.0
    release: float = 0.0


@dataclass
class ReverbSettings:
    mix: float = 0.0
    decay: float = 2.0


def _default_eq():
    return [EQBand(float(f)) for f in DEFAULT_EQ_FREQUENCIES]


@dataclass
class ParameterSet:
    master_gain: float = 0.0
    eq: list = field(default_factory=_default_eq)
    compressor: CompressorSettings = field(default_factory=CompressorSettings)
    reverb: ReverbSettings = field(default_factory=ReverbSettings)
    saturation: float = 0.0
    body: float = 0.0
    air: float = 0.0
    stereo_width: float = 0.0
    stereo_bass: float = 0.0
    dynamic_bass: float = 0.0
    ceiling: float = 0.0
    soft_clip: float = 0.0

    def copy(self) -> ParameterSet:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "master_gain": self.master_gain,
            "eq": [{"frequency": b.frequency, "gain": b.gain} for b in self.eq],
            "compressor": {
                "threshold": self.compressor.threshold,
                "ratio": self.compressor.ratio,
                "attack": self.compressor.attack,
                "release": self.compressor.release,
            },
            "reverb": {"mix": self.reverb.mix, "decay": self.reverb.decay},
            "saturation": self.saturation,
            "body": self.body,
            "air": self.air,
            "stereo_width": self.stereo_width,
            "stereo_bass": self.stereo_bass,
            "dynamic_bass": self.dynamic_bass,
            "ceiling": self.ceiling,
            "soft_clip": self.soft_clip,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ParameterSet:
        """Build from a preset-file dict. Missing keys take their defaults."""
        settings = cls()
        for key in ("master_gain", "saturation", "body", "air", "stereo_width",
                    "stereo_bass", "dynamic_bass", "ceiling", "soft_clip"):
            if key in data:
                setattr(settings, key, float(data[key]))
        if "eq" in data:
            settings.eq = [EQBand(float(b["frequency"]), float(b.get("gain", 0.0)))
                           for b in data["eq"]]
        comp = data.get("compressor", {})
        for key in ("threshold", "ratio", "attack", "release"):
            if key in comp:
                setattr(settings.compressor, key, float(comp[key]))
        rev = data.get("reverb", {})
        for key in ("mix", "decay"):
            if key in rev:
                setattr(settings.reverb, key, float(rev[key]))
        return settings

    def to_flat(self) -> dict:
        """Scalar fields as dotted keys, matching SCHEMA."""
        flat = {}
        for p in SCHEMA:
            if p.type != T.FLOAT:
                continue
            value = self
            for part in p.key.split("."):
                value = getattr(value, part)
            flat[p.key] = value
        return flat

    def with_overrides(self, flat: dict) -> ParameterSet:
        """Copy with flat dotted-key overrides applied ("reverb.mix": 0.2).

        "eq.gains" sets band gains in ascending frequency order, like the
        chain; bands past the end of the list, or given as None, keep their
        current gain.
        """
        result = self.copy()
        for key, value in flat.items():
            if key == "eq.gains":
                bands = sorted(result.eq, key=lambda b: b.frequency)
                for band, gain in zip(bands, value):
                    if gain is not None:
                        band.gain = float(gain)
                continue
            target = result
            parts = key.split(".")
            for part in parts[:-1]:
                target = getattr(target, part)
            if not hasattr(target, parts[-1]):
                raise KeyError(key)
            setattr(target, parts[-1], float(value))
        return result


def default_settings() -> ParameterSet:
    """The all-neutral configuration: unity gain, flat EQ, no processing."""
    return ParameterSet()
