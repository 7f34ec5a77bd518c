#!/usr/bin/env python3
"""Mastering — command-line front end.

    python -m master.main render in.wav out.wav --preset Pop --format 24
    python -m master.main presets
    python -m master.main params
    python -m master.main assist analysis.json
    python -m master.main play song.wav --preset Rock
"""

import argparse
import json
import logging
import sys
import time

from master.audio import render
from master.engine.assistant import AnalysisResult, generate_settings
from master.engine.buffer import AudioBuffer
from master.engine.errors import MasteringError
from master.engine.live import MasteringEngine
from master.engine.params import SCHEMA
from master.engine.presets import PRESETS
from master.engine.transport import TransportController, TransportState
from shared.audio import load_audio

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")


def cmd_presets(args):
    for preset in PRESETS.values():
        print(f"{preset.name:16s} {preset.description}")


def cmd_params(args):
    defaults = SCHEMA.default_params()
    ranges = SCHEMA.param_ranges()
    for section, keys in SCHEMA.param_sections().items():
        print(f"[{section}]")
        for key in keys:
            default = defaults[key]
            if isinstance(default, list):
                default = f"{len(default)} x {default[0]:g}"
            lo, hi = ranges[key]
            label = SCHEMA.get(key).label
            print(f"  {key:22s} {str(default):10s} [{lo:g}, {hi:g}]  {label}".rstrip())


def cmd_assist(args):
    with open(args.analysis) as f:
        decision = generate_settings(AnalysisResult.from_dict(json.load(f)))
    for line in decision.logs:
        print(line)
    print(json.dumps(decision.settings.to_dict(), indent=2))


def cmd_play(args):
    settings = render.resolve_settings(preset=args.preset,
                                       overrides=render.parse_overrides(args.set))
    audio, sr = load_audio(args.input)
    buffer = AudioBuffer.from_frames(audio, sr)
    transport = TransportController(MasteringEngine(sample_rate=sr))
    transport.load(buffer)
    transport.play(args.start, settings)
    print(f"Playing {args.input} ({buffer.duration:.1f}s). Ctrl+C to stop.")
    try:
        while transport.state == TransportState.PLAYING:
            time.sleep(0.1)
    except KeyboardInterrupt:
        transport.pause()
        print(f"\nStopped at {transport.current_time:.1f}s")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Audio mastering chain")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("render", help="Render a file offline")
    render.add_arguments(p)
    p.set_defaults(func=render.run)

    p = sub.add_parser("presets", help="List library presets")
    p.set_defaults(func=cmd_presets)

    p = sub.add_parser("params", help="List parameters with defaults and ranges")
    p.set_defaults(func=cmd_params)

    p = sub.add_parser("assist", help="Derive settings from an analysis JSON")
    p.add_argument("analysis")
    p.set_defaults(func=cmd_assist)

    p = sub.add_parser("play", help="Play a file through the live chain")
    p.add_argument("input")
    p.add_argument("--preset")
    p.add_argument("--start", type=float, default=0.0, help="Start offset in seconds")
    p.add_argument("--set", action="append", default=[], metavar="KEY=VALUE")
    p.set_defaults(func=cmd_play)

    args = parser.parse_args(argv)
    try:
        args.func(args)
    except MasteringError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
