"""Graph runtime — a ChainTopology instantiated against a render context.

Each stage becomes a node holding its DSP state. A block flows through the
nodes in stage order; a node's input is the sum of the outputs of every
stage wired into it. In a realtime context numeric parameters glide to new
values with a one-pole exponential approach (time constant SMOOTHING_TAU);
in an offline context every value is static.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from master.engine.chain import INPUT, OUTPUT
from master.engine.curves import make_curve
from master.engine.impulse import ImpulseSynthesizer, normalization_scale
from master.engine.meter import SpectrumAnalyser
from master.engine.params import SR
from primitives.convolution import Convolver
from primitives.dsp import compressor_gain, one_pole_lowpass, waveshape
from primitives.filters import BiquadFilter
from primitives.matrix import apply_matrix, get_matrix

log = logging.getLogger(__name__)

SMOOTHING_TAU = 0.05
BLOCK_SIZE = 1024


@dataclass(eq=False)
class RenderContext:
    """Owner of a graph's timing. Identity matters: impulse caches key on it."""
    sample_rate: int = SR
    realtime: bool = False
    block_size: int | None = None


class SmoothedParam:
    """A scalar that approaches its target exponentially, block by block."""

    def __init__(self, value, sample_rate, tau=SMOOTHING_TAU):
        self.value = float(value)
        self.target = float(value)
        self.coeff = math.exp(-1.0 / (tau * sample_rate))

    @property
    def settled(self):
        return self.value == self.target

    def set_target(self, target, ramp=True):
        self.target = float(target)
        if not ramp:
            self.value = self.target

    def block(self, n):
        if self.settled or n == 0:
            return np.full(n, self.value)
        out = one_pole_lowpass(np.full(n, self.target), self.coeff, self.value)
        self.value = float(out[-1])
        if abs(self.value - self.target) <= 1e-6 * max(1.0, abs(self.target)):
            self.value = self.target
        return out


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

class StageNode:

    def __init__(self, stage, context):
        self.stage = stage
        self.key = stage.key
        self.context = context
        self.params = {name: SmoothedParam(v, context.sample_rate)
                       for name, v in stage.values().items()}

    def update(self, stage):
        for name, value in stage.values().items():
            self.params[name].set_target(value, ramp=self.context.realtime)
        self.stage = stage

    def process(self, x):
        raise NotImplementedError


class FilterNode(StageNode):

    def __init__(self, stage, context):
        super().__init__(stage, context)
        self.channels = stage.channels or (0, 1)
        self.filter = BiquadFilter(stage.filter_type, stage.frequency, stage.q,
                                   stage.gain, context.sample_rate)

    def process(self, x):
        out = x.copy()
        gain = self.params["gain"]
        ramp = None
        if gain.settled:
            if gain.value != self.filter.gain_db:
                self.filter.set_gain(gain.value)
        else:
            ramp = self.filter.ramp_coeffs(gain.block(x.shape[1]))
            self.filter.set_gain(gain.value)
        for ch in self.channels:
            out[ch] = self.filter.process(x[ch], ch, ramp)
        return out


class ShaperNode(StageNode):

    def __init__(self, stage, context):
        super().__init__(stage, context)
        self.curve = make_curve(stage.curve, stage.amount)

    def update(self, stage):
        # Table swap, never ramped
        if stage.amount != self.stage.amount:
            self.curve = make_curve(stage.curve, stage.amount)
        super().update(stage)

    def process(self, x):
        return np.vstack([waveshape(x[ch], self.curve) for ch in range(x.shape[0])])


class DynamicsNode(StageNode):

    def __init__(self, stage, context):
        super().__init__(stage, context)
        self.state = np.zeros(1)

    def process(self, x):
        n = x.shape[1]
        p = self.params
        gain = compressor_gain(
            x[0], x[1],
            p["threshold"].block(n),
            np.maximum(1.0, p["ratio"].block(n)),
            p["attack"].block(n),
            p["release"].block(n),
            float(self.stage.knee), float(self.context.sample_rate), self.state,
        )
        return x * gain


class GainNode(StageNode):

    def __init__(self, stage, context):
        super().__init__(stage, context)
        self.channels = stage.channels or (0, 1)

    def process(self, x):
        gain = self.params["gain"]
        g = gain.value if gain.settled else gain.block(x.shape[1])
        out = x.copy()
        for ch in self.channels:
            out[ch] = x[ch] * g
        return out


class ConvolverNode(StageNode):

    def __init__(self, stage, context, impulses):
        super().__init__(stage, context)
        self.impulses = impulses
        self.impulse = impulses.get(context, stage.decay)
        block_size = context.block_size if context.realtime else None
        self.convolver = Convolver(self._scaled(self.impulse), block_size)

    def _scaled(self, impulse):
        return impulse.samples * normalization_scale(impulse.samples, impulse.sample_rate)

    def update(self, stage):
        impulse = self.impulses.get(self.context, stage.decay)
        if impulse is not self.impulse:
            self.impulse = impulse
            self.convolver.set_response(self._scaled(impulse))
        super().update(stage)

    def process(self, x):
        return self.convolver.process(x)


class MatrixNode(StageNode):

    def __init__(self, stage, context):
        super().__init__(stage, context)
        self.matrix = get_matrix(stage.matrix)

    def process(self, x):
        return apply_matrix(self.matrix, x)


class TapNode(StageNode):

    def __init__(self, stage, context):
        super().__init__(stage, context)
        self.analyser = SpectrumAnalyser()

    def process(self, x):
        self.analyser.push(x)
        return x


NODE_TYPES = {
    "filter": FilterNode,
    "shaper": ShaperNode,
    "dynamics": DynamicsNode,
    "gain": GainNode,
    "matrix": MatrixNode,
    "tap": TapNode,
}


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------

class Graph:

    def __init__(self, topology, context, impulses=None):
        self.topology = topology
        self.context = context
        self.impulses = impulses if impulses is not None else ImpulseSynthesizer()
        self.nodes = {stage.key: self._make_node(stage) for stage in topology.stages}
        self._inputs = {key: topology.inputs_of(key) for key in self.nodes}
        self._outputs = topology.inputs_of(OUTPUT)
        self._check_order()
        self.connected = True
        log.debug("graph built: %d stages, %d edges (%s)", len(self.nodes),
                  len(topology.edges), "realtime" if context.realtime else "offline")

    def _make_node(self, stage):
        if stage.kind == "convolver":
            return ConvolverNode(stage, self.context, self.impulses)
        return NODE_TYPES[stage.kind](stage, self.context)

    def _check_order(self):
        seen = {INPUT}
        for key, sources in self._inputs.items():
            for src in sources:
                if src not in seen:
                    raise ValueError(f"stage '{key}' is wired from '{src}' which comes later")
            seen.add(key)

    @property
    def edges(self):
        return self.topology.edges if self.connected else ()

    @property
    def tap(self):
        for node in self.nodes.values():
            if isinstance(node, TapNode):
                return node.analyser
        return None

    def process(self, block):
        """Run one (2, frames) block through the chain. Detached graphs output silence."""
        if not self.connected:
            return np.zeros_like(block)
        signals = {INPUT: block}
        for key, node in self.nodes.items():
            sources = self._inputs[key]
            x = signals[sources[0]]
            for src in sources[1:]:
                x = x + signals[src]
            signals[key] = node.process(x)
        out = signals[self._outputs[0]]
        for src in self._outputs[1:]:
            out = out + signals[src]
        return out

    def update(self, topology):
        """Retarget parameters for a topology with the same wiring."""
        if topology.signature() != self.topology.signature():
            raise ValueError("topology wiring changed; rebuild the graph instead")
        for stage in topology.stages:
            self.nodes[stage.key].update(stage)
        self.topology = topology

    def detach(self):
        """Disconnect every stage. Safe to call more than once."""
        if not self.connected:
            return
        self.connected = False
        self._inputs = {}
        self._outputs = []
        log.debug("graph detached: %d stages", len(self.nodes))
