#!/usr/bin/env python3
"""Launch the mastering tool from the project root.

Usage:
    uv run python main.py render in.wav out.wav --preset Pop
    uv run python main.py presets
"""

import sys

if __name__ == "__main__":
    from master.main import main
    sys.exit(main())
