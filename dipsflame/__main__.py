"""
dipsflame.__main__ - Entry point for running dipsflame as a module.

Usage:
    python -m dipsflame <log_file> [<log_file> ...] [options]
"""

import sys

from dipsflame.cli import main

if __name__ == "__main__":
    sys.exit(main())
