#!/usr/bin/env python3
"""
Mareatigre CLI entrypoint.

Usage:
    python -m mareatigre <command> [options]
    mareatigre <command> [options]  # if installed via pip

See --help for available commands.
"""

from __future__ import annotations

import sys

from mareatigre.cli import main

if __name__ == "__main__":
    sys.exit(main())
