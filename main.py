#!/usr/bin/env python3
"""FocusTrack — maintenance entry point.

Run with:
    python main.py rollover
    python -m focustrack rollover
"""

import sys

from focustrack.__main__ import main


if __name__ == "__main__":
    sys.exit(main())
