#!/usr/bin/env python3
"""
Project Economics CLI Entry Point
=================================
Thin wrapper around econ_engine.cli for running from a source checkout.

Usage:
    python scripts/analyze_project.py comprehensive --input params.json
    # or after pip install -e .
    econ-engine comprehensive --input params.json
"""

import sys
from pathlib import Path

# Add src to path for development
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from econ_engine.cli import main


if __name__ == "__main__":
    sys.exit(main())
