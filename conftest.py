"""
Root conftest: puts scripts/ on sys.path so tests can import hotel_scrapers
and the command-line modules without installing the package.
"""

import sys
from pathlib import Path

SCRIPTS_DIR = str(Path(__file__).parent / "scripts")
if SCRIPTS_DIR not in sys.path:
    sys.path.insert(0, SCRIPTS_DIR)
