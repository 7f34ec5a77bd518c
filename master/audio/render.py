"""Offline mastering renderer.

Usage:
    python -m master.audio.render input.wav [output.wav] [--preset Pop]
        [--preset-file preset.json] [--assist analysis.json]
        [--format 16|24|32f] [--set reverb.mix=0.2 --set eq.gains=[1,0,2]]

Without an output path the master is written next to the input as
<stem>_master_<format>.wav.
"""

import argparse
import json
import logging
import os
import sys

from master.engine.assistant import AnalysisResult, generate_settings
from master.engine.buffer import AudioBuffer
from master.engine.errors import MasteringError
from master.engine.offline import render_offline
from master.engine.params import SCHEMA, default_settings
from master.engine.presets import apply_preset, load_preset_file
from shared.audio import (
    EXPORT_FORMATS, FORMAT_ALIASES, export_filename, load_audio, resolve_format,
    safety_check, save_wav,
)

log = logging.getLogger(__name__)


def parse_overrides(pairs):
    """["reverb.mix=0.2", "eq.gains=[1,2]"] -> validated flat dict."""
    raw = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise MasteringError(f"override '{pair}' is not key=value")
        key, value = pair.split("=", 1)
        key = key.strip()
        if SCHEMA.get(key) is None:
            log.warning("ignoring unknown parameter '%s'", key)
            continue
        try:
            raw[key] = json.loads(value)
        except json.JSONDecodeError as exc:
            raise MasteringError(f"bad value for '{key}': {value}") from exc
    return SCHEMA.validate_and_clamp(raw)


def resolve_settings(preset=None, preset_file=None, assist=None, overrides=None):
    """Base settings from a preset, preset file or analysis, then overrides on top."""
    if assist:
        with open(assist) as f:
            decision = generate_settings(AnalysisResult.from_dict(json.load(f)))
        settings = decision.settings
    elif preset_file:
        settings = load_preset_file(preset_file)
    elif preset:
        try:
            settings = apply_preset(preset)
        except KeyError as exc:
            raise MasteringError(exc.args[0]) from exc
    else:
        settings = default_settings()
    if overrides:
        settings = settings.with_overrides(overrides)
    return settings


def render_file(input_path, output_path, settings, fmt="16-Bit PCM"):
    fmt = resolve_format(fmt)
    if output_path is None:
        output_path = os.path.join(os.path.dirname(input_path),
                                   export_filename(input_path, fmt))
    audio, sr = load_audio(input_path)
    buffer = AudioBuffer.from_frames(audio, sr)
    ch = "stereo" if buffer.channels > 1 else "mono"
    print(f"Loaded {input_path}: {buffer.frames} samples, {sr} Hz, {ch}")

    rendered = render_offline(buffer, settings)
    ok, msg = safety_check(rendered.samples)
    if not ok:
        raise MasteringError(msg)
    save_wav(output_path, rendered.as_frames(), sr, fmt)
    print(f"Saved {output_path} ({fmt})")
    return rendered


def add_arguments(parser):
    parser.add_argument("input", help="Input audio file")
    parser.add_argument("output", nargs="?",
                        help="Output WAV file (default: <input>_master_<format>.wav)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--preset", help="Library preset name")
    source.add_argument("--preset-file", help="Preset JSON file")
    source.add_argument("--assist", metavar="ANALYSIS",
                        help="Analysis JSON; settings come from the assistant")
    parser.add_argument("--format", default="16",
                        choices=list(FORMAT_ALIASES) + list(EXPORT_FORMATS),
                        help="Export format (default 16-bit PCM)")
    parser.add_argument("--set", action="append", default=[], metavar="KEY=VALUE",
                        help="Override one parameter, e.g. compressor.ratio=3")


def run(args):
    settings = resolve_settings(args.preset, args.preset_file, args.assist,
                                parse_overrides(args.set))
    render_file(args.input, args.output, settings, args.format)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Mastering offline renderer")
    add_arguments(parser)
    args = parser.parse_args(argv)
    try:
        run(args)
    except MasteringError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
