# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/__main__.py
# Purpose: Entry point for `python -m chain`
# =============================================================================

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
