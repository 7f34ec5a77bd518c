"""Test impulse synthesis and the per-context cache.

Run: uv run python -m pytest tests/test_impulse.py
"""

import numpy as np
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from master.engine.graph import RenderContext
from master.engine.impulse import ImpulseSynthesizer, normalization_scale, synthesize_impulse

SR = 8000


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------
def test_shape_and_range():
    ir = synthesize_impulse(SR, 2.0, duration=0.5)
    assert ir.shape == (2, 4000)
    assert np.all(np.abs(ir) <= 1.0)


def test_envelope_decays():
    ir = synthesize_impulse(SR, 2.0, duration=1.0)
    head = np.mean(np.abs(ir[:, :800]))
    tail = np.mean(np.abs(ir[:, -800:]))
    assert tail < head * 0.1


def test_reverse_envelope_rises():
    ir = synthesize_impulse(SR, 2.0, duration=1.0, reverse=True)
    head = np.mean(np.abs(ir[:, :800]))
    tail = np.mean(np.abs(ir[:, -800:]))
    assert head < tail * 0.1


def test_channels_are_independent():
    ir = synthesize_impulse(SR, 1.0, duration=0.5)
    assert not np.array_equal(ir[0], ir[1])
    assert abs(np.corrcoef(ir[0], ir[1])[0, 1]) < 0.1


def test_seeded_noise_is_repeatable():
    a = synthesize_impulse(SR, 2.0, duration=0.2, seed=7)
    b = synthesize_impulse(SR, 2.0, duration=0.2, seed=7)
    c = synthesize_impulse(SR, 2.0, duration=0.2, seed=8)
    assert np.array_equal(a, b)
    assert not np.array_equal(a, c)


def test_normalization_scale():
    ones = np.ones((2, 100))
    assert np.isclose(normalization_scale(ones, 44100), 0.00125)
    assert np.isclose(normalization_scale(ones, 22050), 0.0025)
    # Very quiet responses are boosted by at most 10x
    quiet = np.full((2, 100), 1e-6)
    assert np.isclose(normalization_scale(quiet, 44100), 10.0)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------
def test_close_decay_hits_cache():
    synth = ImpulseSynthesizer(duration=0.1)
    ctx = RenderContext(SR)
    a = synth.get(ctx, 2.0)
    b = synth.get(ctx, 2.005)
    assert a is b
    assert a.length == 800


def test_far_decay_regenerates():
    synth = ImpulseSynthesizer(duration=0.1)
    ctx = RenderContext(SR)
    a = synth.get(ctx, 2.0)
    b = synth.get(ctx, 2.05)
    assert b is not a
    assert b.decay == 2.05
    # Cache now holds the newer response
    assert synth.get(ctx, 2.051) is b


def test_other_context_regenerates():
    synth = ImpulseSynthesizer(duration=0.1)
    a = synth.get(RenderContext(SR), 2.0)
    ctx2 = RenderContext(SR)
    b = synth.get(ctx2, 2.0)
    assert b is not a
    assert synth.get(ctx2, 2.0) is b


def test_sample_rate_follows_context():
    synth = ImpulseSynthesizer(duration=0.1)
    ir = synth.get(RenderContext(16000), 2.0)
    assert ir.sample_rate == 16000
    assert ir.length == 1600


def test_cached_samples_are_read_only():
    ir = ImpulseSynthesizer(duration=0.1).get(RenderContext(SR), 2.0)
    assert not ir.samples.flags.writeable


if __name__ == "__main__":
    test_shape_and_range()
    test_envelope_decays()
    test_channels_are_independent()
    test_close_decay_hits_cache()
    test_far_decay_regenerates()
    test_other_context_regenerates()
    print("Done!")
