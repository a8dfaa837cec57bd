#!/usr/bin/env python3
"""
gigi-auth runner.

Usage:
    python run_auth.py status
    python run_auth.py signup --name Alice
    python run_auth.py --db data/gigi.db unlock

Environment variables (alternative to flags):
    GIGI_DB_PATH, GIGI_LOG_LEVEL, GIGI_LOG_FMT, GIGI_KDF_TIME_COST, ...
"""

from __future__ import annotations

import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from gigi_auth.cli import main_sync  # noqa: E402

if __name__ == "__main__":
    main_sync()
