"""Test the live engine — rebuilds, in-place updates, smoothing, pulling.

Run: uv run python -m pytest tests/test_live.py
"""

import numpy as np
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from master.engine.buffer import AudioBuffer
from master.engine.curves import soft_clip_curve
from master.engine.errors import NoBufferLoaded
from master.engine.live import MasteringEngine
from master.engine.offline import render_offline
from master.engine.params import default_settings
from master.engine.presets import apply_preset

SR = 44100
BLOCK = 256


def make_engine(frames=4 * BLOCK, value=None, seed=2):
    if value is None:
        samples = np.random.RandomState(seed).uniform(-0.3, 0.3, (2, frames))
    else:
        samples = np.full((2, frames), value)
    engine = MasteringEngine(sample_rate=SR, block_size=BLOCK)
    engine.load(AudioBuffer(samples, SR))
    return engine


def pull_all(engine, chunk=300):
    chunks = []
    while True:
        out = engine.pull(chunk)
        if len(out) == 0:
            break
        chunks.append(out)
    return np.concatenate(chunks, axis=0)


# ---------------------------------------------------------------------------
# Graph lifecycle
# ---------------------------------------------------------------------------
def test_pull_without_graph_is_empty():
    engine = make_engine()
    assert engine.pull(128).shape == (0, 2)


def test_setup_requires_buffer():
    engine = MasteringEngine(sample_rate=SR, block_size=BLOCK)
    with pytest.raises(NoBufferLoaded):
        engine.setup_graph(default_settings())


def test_rebuild_detaches_previous_graph():
    engine = make_engine()
    engine.setup_graph(default_settings())
    first = engine.graph
    engine.setup_graph(default_settings())
    assert not first.connected
    assert first.edges == ()
    assert engine.graph is not first and engine.graph.connected


def test_load_drops_graph():
    engine = make_engine()
    engine.setup_graph(default_settings())
    old = engine.graph
    engine.load(AudioBuffer(np.zeros((2, 100)), SR))
    assert engine.graph is None
    assert not old.connected


def test_value_update_keeps_graph():
    engine = make_engine()
    engine.setup_graph(default_settings())
    graph = engine.graph
    settings = default_settings()
    settings.air = 3.0
    engine.update_settings(settings)
    assert engine.graph is graph
    assert graph.nodes["air"].params["gain"].target == 3.0


def test_eq_frequency_change_rebuilds():
    engine = make_engine()
    engine.setup_graph(default_settings())
    graph = engine.graph
    settings = default_settings()
    settings.eq[3].frequency = 250.0
    engine.update_settings(settings)
    assert engine.graph is not graph
    assert not graph.connected


def test_decay_change_swaps_impulse():
    engine = make_engine()
    engine.setup_graph(default_settings())
    graph = engine.graph
    first = graph.nodes["reverb"].impulse
    settings = default_settings()
    settings.reverb.decay = 2.005
    engine.update_settings(settings)
    assert graph.nodes["reverb"].impulse is first
    settings.reverb.decay = 3.0
    engine.update_settings(settings)
    assert engine.graph is graph
    assert graph.nodes["reverb"].impulse.decay == 3.0


def test_curve_swap_is_immediate():
    engine = make_engine()
    engine.setup_graph(default_settings())
    settings = default_settings()
    settings.soft_clip = 0.5
    engine.update_settings(settings)
    assert engine.graph.nodes["soft_clip"].curve is soft_clip_curve(0.5)


def test_new_sample_rate_gets_new_context():
    engine = make_engine()
    ctx = engine.context
    engine.load(AudioBuffer(np.zeros((2, 100)), 22050))
    assert engine.context is not ctx
    assert engine.sample_rate == 22050


# ---------------------------------------------------------------------------
# Automation
# ---------------------------------------------------------------------------
def test_gain_change_ramps_live():
    engine = make_engine(value=0.25)
    engine.setup_graph(default_settings())
    engine.start(0.0)
    settings = default_settings()
    settings.master_gain = 0.5
    engine.update_settings(settings)
    out = engine.pull(BLOCK)[:, 0]
    assert out[0] > 0.25
    assert np.all(np.diff(out) > 0)
    assert out[-1] < 0.375


def test_offline_applies_same_change_as_a_step():
    engine = make_engine(value=0.25)
    settings = default_settings()
    settings.master_gain = 0.5
    out = render_offline(engine.buffer, settings).samples
    assert np.allclose(out, 0.375, atol=1e-12)


# ---------------------------------------------------------------------------
# Pulling
# ---------------------------------------------------------------------------
def test_pull_stops_at_end_of_buffer():
    engine = make_engine(frames=1000)
    engine.setup_graph(default_settings())
    out = pull_all(engine)
    assert out.shape == (1000, 2)
    assert engine.pull(64).shape == (0, 2)


def test_start_offset():
    engine = make_engine(frames=1000)
    engine.setup_graph(default_settings())
    engine.start(500 / SR)
    assert pull_all(engine).shape == (500, 2)


def test_live_matches_offline_with_static_settings():
    engine = make_engine(frames=int(SR * 0.2))
    settings = apply_preset("Anatolian Rock")
    engine.setup_graph(settings)
    live = pull_all(engine, chunk=700).T
    offline = engine.render_offline(settings).samples
    assert live.shape == offline.shape
    assert np.allclose(live, offline, atol=1e-6)


def test_spectrum_reading():
    engine = make_engine()
    assert engine.spectrum() is None
    engine.setup_graph(default_settings())
    engine.pull(BLOCK)
    reading = engine.spectrum()
    assert reading.shape == (1024,)
    assert reading.dtype == np.uint8


if __name__ == "__main__":
    test_rebuild_detaches_previous_graph()
    test_value_update_keeps_graph()
    test_gain_change_ramps_live()
    test_offline_applies_same_change_as_a_step()
    test_live_matches_offline_with_static_settings()
    print("Done!")
