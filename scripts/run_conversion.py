#!/usr/bin/env python3
"""
Run the corpus structure to XACML conversion.

Usage:
    python scripts/run_conversion.py MPI12345#
    python scripts/run_conversion.py -c corpusstructure.db -d ./generatedPolicies MPI12345# MPI67890#
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ams2xacml.cli import main


if __name__ == "__main__":
    sys.exit(main())
