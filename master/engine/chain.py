"""Chain topology — the fixed mastering signal flow as data.

build_chain turns a ParameterSet into a ChainTopology: an ordered tuple of
stage descriptions (tagged by kind) plus a tuple of (source, destination)
edges running from "input" to "output". Both the offline and the live
backend instantiate the same description, so the routing is defined in
exactly one place.

Signal flow:

    input -> eq_0 .. eq_N -> dynamic_bass -> body -> saturation -> compressor
          compressor -> dry ----------------------------------> air
          compressor -> reverb_tone -> reverb -> wet ---------> air
    air -> ms_encode -> stereo_bass (side) -> width (side) -> ms_decode
        -> master_gain -> soft_clip -> limiter -> meter -> output
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

INPUT = "input"
OUTPUT = "output"

EQ_Q = 1.0
DYNAMIC_BASS_FREQ, DYNAMIC_BASS_Q = 65.0, 1.2
BODY_FREQ, BODY_Q = 300.0, 0.7
REVERB_TONE_FREQ, REVERB_TONE_Q = 5000.0, 0.707
AIR_FREQ = 12000.0
STEREO_BASS_FREQ = 120.0
COMPRESSOR_KNEE = 30.0
LIMITER_ATTACK = 0.001
LIMITER_RELEASE = 0.1
LIMITER_RATIO = 20.0

SIDE = (1,)  # channel 1 of an M/S pair


# ---------------------------------------------------------------------------
# Stage variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FilterStage:
    kind: ClassVar[str] = "filter"
    key: str
    filter_type: str
    frequency: float
    q: float
    gain: float = 0.0
    channels: tuple | None = None

    def values(self):
        return {"gain": self.gain}


@dataclass(frozen=True)
class ShaperStage:
    kind: ClassVar[str] = "shaper"
    key: str
    curve: str
    amount: float

    def values(self):
        return {}


@dataclass(frozen=True)
class DynamicsStage:
    kind: ClassVar[str] = "dynamics"
    key: str
    threshold: float
    ratio: float
    attack: float
    release: float
    knee: float

    def values(self):
        return {"threshold": self.threshold, "ratio": self.ratio,
                "attack": self.attack, "release": self.release}


@dataclass(frozen=True)
class GainStage:
    kind: ClassVar[str] = "gain"
    key: str
    gain: float
    channels: tuple | None = None

    def values(self):
        return {"gain": self.gain}


@dataclass(frozen=True)
class ConvolverStage:
    kind: ClassVar[str] = "convolver"
    key: str
    decay: float

    def values(self):
        return {}


@dataclass(frozen=True)
class MatrixStage:
    kind: ClassVar[str] = "matrix"
    key: str
    matrix: str

    def values(self):
        return {}


@dataclass(frozen=True)
class TapStage:
    kind: ClassVar[str] = "tap"
    key: str

    def values(self):
        return {}


@dataclass(frozen=True)
class ChainTopology:
    stages: tuple
    edges: tuple

    def keys(self):
        return [s.key for s in self.stages]

    def stage(self, key):
        for s in self.stages:
            if s.key == key:
                return s
        raise KeyError(key)

    def inputs_of(self, key):
        return [src for src, dst in self.edges if dst == key]

    def eq_stages(self):
        return [s for s in self.stages if s.key.startswith("eq_")]

    def signature(self):
        """Everything that fixes the wiring. Equal signatures can be updated in place."""
        return tuple((s.kind, s.key, getattr(s, "filter_type", None),
                      getattr(s, "frequency", None)) for s in self.stages) + self.edges


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def eq_filter_type(index, count):
    if index == 0:
        return "lowshelf"
    if index == count - 1:
        return "highshelf"
    return "peaking"


def build_chain(settings) -> ChainTopology:
    stages = []
    edges = []
    prev = INPUT

    def link(stage, *sources):
        stages.append(stage)
        for src in sources:
            edges.append((src, stage.key))

    bands = sorted(settings.eq, key=lambda b: b.frequency)
    for i, band in enumerate(bands):
        stage = FilterStage(f"eq_{i}", eq_filter_type(i, len(bands)),
                            float(band.frequency), EQ_Q, float(band.gain))
        link(stage, prev)
        prev = stage.key

    link(FilterStage("dynamic_bass", "peaking", DYNAMIC_BASS_FREQ, DYNAMIC_BASS_Q,
                     settings.dynamic_bass), prev)
    link(FilterStage("body", "peaking", BODY_FREQ, BODY_Q, settings.body), "dynamic_bass")
    link(ShaperStage("saturation", "saturation", settings.saturation), "body")

    comp = settings.compressor
    link(DynamicsStage("compressor", comp.threshold, max(1.0, comp.ratio),
                       comp.attack, comp.release, COMPRESSOR_KNEE), "saturation")

    # Reverb send: dry and wet paths sum at the air shelf
    mix = settings.reverb.mix
    link(GainStage("dry", 1.0 - mix), "compressor")
    link(FilterStage("reverb_tone", "lowpass", REVERB_TONE_FREQ, REVERB_TONE_Q),
         "compressor")
    link(ConvolverStage("reverb", settings.reverb.decay), "reverb_tone")
    link(GainStage("wet", mix), "reverb")
    link(FilterStage("air", "highshelf", AIR_FREQ, 0.707, settings.air), "dry", "wet")

    link(MatrixStage("ms_encode", "ms_encode"), "air")
    link(FilterStage("stereo_bass", "lowshelf", STEREO_BASS_FREQ, 0.707,
                     settings.stereo_bass, channels=SIDE), "ms_encode")
    link(GainStage("width", 1.0 + settings.stereo_width, channels=SIDE), "stereo_bass")
    link(MatrixStage("ms_decode", "ms_decode"), "width")

    link(GainStage("master_gain", 1.0 + settings.master_gain), "ms_decode")
    link(ShaperStage("soft_clip", "soft_clip", settings.soft_clip), "master_gain")
    link(DynamicsStage("limiter", settings.ceiling, LIMITER_RATIO, LIMITER_ATTACK,
                       LIMITER_RELEASE, 0.0), "soft_clip")
    link(TapStage("meter"), "limiter")
    edges.append(("meter", OUTPUT))

    return ChainTopology(tuple(stages), tuple(edges))
