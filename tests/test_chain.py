"""Test chain topology — stage order, EQ layout, routing.

Run: uv run python -m pytest tests/test_chain.py
"""

import os
import random
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from master.engine.chain import INPUT, OUTPUT, build_chain
from master.engine.params import DEFAULT_EQ_FREQUENCIES, EQBand, default_settings
from master.engine.presets import apply_preset

MAIN_PATH = ["dynamic_bass", "body", "saturation", "compressor", "dry", "reverb_tone",
             "reverb", "wet", "air", "ms_encode", "stereo_bass", "width", "ms_decode",
             "master_gain", "soft_clip", "limiter", "meter"]


# ---------------------------------------------------------------------------
# EQ layout
# ---------------------------------------------------------------------------
def test_eq_sorted_by_frequency():
    settings = default_settings()
    random.Random(4).shuffle(settings.eq)
    eq = build_chain(settings).eq_stages()
    freqs = [s.frequency for s in eq]
    assert freqs == sorted(DEFAULT_EQ_FREQUENCIES)
    assert eq[0].filter_type == "lowshelf"
    assert eq[-1].filter_type == "highshelf"
    assert all(s.filter_type == "peaking" and s.q == 1.0 for s in eq[1:-1])


def test_eq_gain_follows_band_not_index():
    settings = default_settings()
    settings.eq = [EQBand(8000, 5.0), EQBand(30, -2.0), EQBand(500, 1.0)]
    eq = build_chain(settings).eq_stages()
    assert [(s.frequency, s.gain) for s in eq] == [(30, -2.0), (500, 1.0), (8000, 5.0)]


def test_single_band_is_low_shelf():
    settings = default_settings()
    settings.eq = [EQBand(100, 2.0)]
    eq = build_chain(settings).eq_stages()
    assert len(eq) == 1 and eq[0].filter_type == "lowshelf"


def test_empty_eq_wires_input_to_dynamic_bass():
    settings = default_settings()
    settings.eq = []
    topo = build_chain(settings)
    assert topo.inputs_of("dynamic_bass") == [INPUT]


# ---------------------------------------------------------------------------
# Order and routing
# ---------------------------------------------------------------------------
def test_stage_order():
    topo = build_chain(default_settings())
    keys = topo.keys()
    assert keys[:14] == [f"eq_{i}" for i in range(14)]
    assert keys[14:] == MAIN_PATH


def test_reverb_send_routing():
    topo = build_chain(apply_preset("Arabesk"))
    assert topo.inputs_of("dry") == ["compressor"]
    assert topo.inputs_of("reverb_tone") == ["compressor"]
    assert topo.inputs_of("reverb") == ["reverb_tone"]
    assert sorted(topo.inputs_of("air")) == ["dry", "wet"]
    assert topo.stage("dry").gain == 1.0 - 0.30
    assert topo.stage("wet").gain == 0.30
    assert topo.stage("reverb").decay == 3.0
    assert topo.stage("reverb_tone").frequency == 5000.0


def test_output_edge():
    topo = build_chain(default_settings())
    assert topo.inputs_of(OUTPUT) == ["meter"]
    assert topo.inputs_of("meter") == ["limiter"]


def test_side_channel_stages():
    settings = default_settings()
    settings.stereo_width = 0.3
    settings.stereo_bass = 2.0
    topo = build_chain(settings)
    assert topo.stage("stereo_bass").channels == (1,)
    assert topo.stage("stereo_bass").filter_type == "lowshelf"
    assert topo.stage("stereo_bass").gain == 2.0
    assert topo.stage("width").channels == (1,)
    assert topo.stage("width").gain == pytest.approx(1.3)


def test_fixed_stage_values():
    settings = apply_preset("Pop")
    topo = build_chain(settings)
    db = topo.stage("dynamic_bass")
    assert (db.frequency, db.q, db.gain) == (65.0, 1.2, 1.0)
    body = topo.stage("body")
    assert (body.frequency, body.q, body.gain) == (300.0, 0.7, 1.0)
    assert topo.stage("air").frequency == 12000.0
    assert topo.stage("master_gain").gain == pytest.approx(1.1)
    lim = topo.stage("limiter")
    assert (lim.threshold, lim.ratio, lim.attack, lim.release, lim.knee) == (-0.2, 20.0, 0.001, 0.1, 0.0)


def test_compressor_ratio_clamped():
    settings = default_settings()
    settings.compressor.ratio = 0.3
    assert build_chain(settings).stage("compressor").ratio == 1.0
    settings.compressor.ratio = 4.0
    assert build_chain(settings).stage("compressor").ratio == 4.0


# ---------------------------------------------------------------------------
# Signature
# ---------------------------------------------------------------------------
def test_signature_ignores_values():
    a = build_chain(default_settings())
    b = build_chain(apply_preset("Rock"))
    assert a.signature() == b.signature()


def test_signature_tracks_eq_frequencies():
    settings = default_settings()
    a = build_chain(settings)
    settings.eq[3].frequency = 250
    assert build_chain(settings).signature() != a.signature()


if __name__ == "__main__":
    test_eq_sorted_by_frequency()
    test_stage_order()
    test_reverb_send_routing()
    test_side_channel_stages()
    test_compressor_ratio_clamped()
    print("Done!")
